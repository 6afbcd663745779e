"""
distbundle: assembles versioned service bundles and supervises the packaged service.
"""

__version__ = "0.1.0"
