"""IPv4 pools, federators, reporters, logging and in-memory API fakes for multi-cluster controllers."""

__version__ = "0.1.0"