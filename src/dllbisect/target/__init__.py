"""Target installation handling."""

from dllbisect.target.handle import TargetHandle
from dllbisect.target.materializer import DirectoryMaterializer, Materializer

__all__ = ["DirectoryMaterializer", "Materializer", "TargetHandle"]
