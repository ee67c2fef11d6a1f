"""Control microcontroller LED strips and manage their firmware from the command line."""

__version__ = "1.0.0"
