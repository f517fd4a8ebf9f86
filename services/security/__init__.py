"""Security module for the Craftsman Phone Assistant"""

from .middleware import TwilioSignatureValidator

__all__ = ["TwilioSignatureValidator"]
