"""sshmux: shared OpenSSH control-master sessions and device-type cache."""

__version__ = "0.3.0"
