"""Default stylesheets shipped with plughost."""
