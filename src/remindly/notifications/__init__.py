"""Notification gateways."""
