"""Interfaces package for adapters.

Define interfaces para servicios y colaboradores externos."""

from .base_service import (
    BaseService,
    ServiceStatus,
    QueryAdvertiserInterface
)
