"""
Test configuration.

GPU tests run the real CUDA kernels on numba's simulator; the variable must be
set before numba is first imported.
"""
import os

os.environ.setdefault("NUMBA_ENABLE_CUDASIM", "1")
