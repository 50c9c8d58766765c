"""Course tools: a Unix V6 disk image reader, an ARM instruction simulator and a typed string list."""

__version__ = "0.1.0"