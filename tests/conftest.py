"""Test configuration for kwh_filter tests."""
import sys
from pathlib import Path

# Add repo root to path so the package imports without installation
root_dir = str(Path(__file__).resolve().parent.parent)
if root_dir not in sys.path:
    sys.path.insert(0, root_dir)
