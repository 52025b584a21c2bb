"""Filesystem collaborators: JSON codec, zip archiver and bulk copier."""
