"""Service layer: configuration, requirement resolution, form controllers and search providers."""
