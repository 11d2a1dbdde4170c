"""
Payment Relay

Backend relay between a merchant frontend and the EveryPay processor.
"""
__version__ = "0.1.0"
