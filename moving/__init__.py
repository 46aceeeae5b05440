"""Booking intake for a moving service: form wizard, REST API and admin tools."""
