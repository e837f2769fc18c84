"""Data models for dbimager."""

from .provisioned_database import ProvisionedDatabase

__all__ = ['ProvisionedDatabase']
