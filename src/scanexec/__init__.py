"""scanexec: bounded, cancellable execution of external security tools."""

__version__ = "0.1.0"
