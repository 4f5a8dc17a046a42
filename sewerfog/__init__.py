"""Sewer FOG monitoring: packets, impact model, overflow risk, summaries, storage and node/gateway/chat runners."""

__version__ = "0.1.0"