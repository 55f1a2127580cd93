"""devsetup — resumable developer workstation provisioning."""

__version__ = "1.0.0"
