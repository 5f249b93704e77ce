"""Managed authentication."""
from .cognito_client import AuthSession, CognitoAuthClient

__all__ = ['AuthSession', 'CognitoAuthClient']
