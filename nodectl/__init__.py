"""Remote supervision of a Celestia light node over SSH."""

__version__ = "0.1.0"
