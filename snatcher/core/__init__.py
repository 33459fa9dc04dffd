"""Core snatch pipeline."""

from .fetcher import FetchError, HttpFetcher
from .pipeline import (
    DecodeFailure,
    DiscoveryFailure,
    PipelineState,
    ReferenceNotFound,
    SnatchError,
    SnatchPipeline,
)
from .reconstructor import Reconstructor

__all__ = [
    'DecodeFailure',
    'DiscoveryFailure',
    'FetchError',
    'HttpFetcher',
    'PipelineState',
    'Reconstructor',
    'ReferenceNotFound',
    'SnatchError',
    'SnatchPipeline',
]
