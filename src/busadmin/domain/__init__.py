"""Domain layer: resource model, selectors, resolution and commands."""
