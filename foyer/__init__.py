"""
Foyer Board Display

Aggregates Nextcloud Deck boards and rotates through them on an
unattended display, most urgent work first.
"""

__version__ = "1.0.0"
