"""rd-autoadd - pick quality releases for trending titles and add them to Real-Debrid."""

__version__ = "1.0.0"
