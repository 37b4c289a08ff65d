"""Infrastructure layer: concrete repository backends."""
