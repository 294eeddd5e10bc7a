"""gitwire - pull selected paths of remote git repositories into a project."""

__version__ = "0.1.0"
