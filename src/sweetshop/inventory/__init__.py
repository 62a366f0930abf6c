"""Inventory bounded context: sweet catalog and stock control."""
