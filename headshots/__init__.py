"""
Headshots API - AI headshot studios, shoots and a public gallery.
"""
