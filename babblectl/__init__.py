"""Firmware session client for Babble face/eye tracking boards."""
