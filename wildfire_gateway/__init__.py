"""Wildfire alert gateway — push-notification ingress, classification and realtime fan-out."""
