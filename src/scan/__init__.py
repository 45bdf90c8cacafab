"""Text-pattern scanning of a file tree."""

from scan.files import iter_files
from scan.matcher import scan, scan_file
from scan.models import Finding

__all__ = ["Finding", "iter_files", "scan", "scan_file"]
