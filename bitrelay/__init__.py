"""bitrelay: relays a 16-bit status bitmask between one device and many web monitors."""

__version__ = "1.0.0"
