"""ContainerCraft: scaffold bring-your-own-container model serving projects."""

__version__ = "0.1.0"
