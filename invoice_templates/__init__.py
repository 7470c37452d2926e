"""Jinja2 templates for printable invoices."""
