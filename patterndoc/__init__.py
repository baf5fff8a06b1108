"""patterndoc: index, validate and render a tree of design-pattern articles."""

__version__ = "0.1.0"
