"""Aether: media conversion orchestration on top of FFmpeg."""

__version__ = "0.1.0"
