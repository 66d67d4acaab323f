#  Copyright (c) 2025 Tom Villani, Ph.D.
"""Shared helpers for image sniffing, path ordering/naming and archive safety."""
