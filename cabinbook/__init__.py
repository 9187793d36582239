"""
cabinbook - availability and conflict-free reservations for shared cabins.
"""

__version__ = "0.1.0"
