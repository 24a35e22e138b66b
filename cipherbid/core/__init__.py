"""Auction lifecycle, catalogue, and bid workflow."""
