"""warden - policy compliance engine for repositories, pull requests and artifacts."""

__version__ = "0.1.0"
