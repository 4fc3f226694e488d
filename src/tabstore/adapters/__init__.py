"""Adapters layer - concrete implementations of ports.

Inbound adapters translate client traffic (command lines over TCP) into
application calls; outbound adapters persist tables on the filesystem.
"""
