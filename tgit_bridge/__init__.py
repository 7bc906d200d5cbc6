"""TGit source-control provider and tag/digest data source."""

__version__ = "0.1.0"
