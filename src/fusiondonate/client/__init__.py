"""Client for the donation API."""

from fusiondonate.client.flow import DonationError, DonationFlow, DonationResult

__all__ = ["DonationFlow", "DonationResult", "DonationError"]
