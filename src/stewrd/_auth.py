"""
This module manages authentication configuration for the Stewrd API.
It resolves the API key from an explicit value or the environment.
"""

from __future__ import annotations

import os
from dataclasses import dataclass

ENV_API_KEY = "STEWRD_API_KEY"


@dataclass(frozen=True, slots=True)
class AuthConfig:
    """
    Configuration container for Stewrd API credentials.
    Ensures the API key is present before any client is built.
    """

    api_key: str

    @staticmethod
    def from_env_or_value(api_key: str | None) -> AuthConfig:
        """
        Create an AuthConfig instance from a provided value or environment variable.

        Args:
            api_key: Optional API key string provided by the user.

        Returns:
            An initialized AuthConfig instance containing the API key.

        Raises:
            ValueError: If no API key is found in both the argument and environment.
        """
        key = api_key or os.getenv(ENV_API_KEY)

        if not key:
            raise ValueError(
                'An API key is required. Define STEWRD_API_KEY in environment or pass api_key="sk-stw_..."'
            )
        return AuthConfig(api_key=key)
