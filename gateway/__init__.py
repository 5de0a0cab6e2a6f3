from __future__ import annotations  # Re-export gateway public API

from .gateway import EngineGateway, FeedbackResult, GatewayError, UnknownSessionError

__all__ = ["EngineGateway", "FeedbackResult", "GatewayError", "UnknownSessionError"]
