"""ReelGen - turns listing photos into styled short-form videos."""

__version__ = "1.0.0"
