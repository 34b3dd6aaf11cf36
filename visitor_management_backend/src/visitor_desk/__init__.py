"""Visitor desk backend: check-in, admin dashboard, slideshow and kiosk display."""
