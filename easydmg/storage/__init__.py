"""Disk image, bundle and filesystem operations used by the installer."""
