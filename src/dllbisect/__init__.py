"""dllbisect - isolate the donor files that repair a broken installation."""

__version__ = "0.1.0"
