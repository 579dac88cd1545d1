"""
pytest configuration and shared fixtures.
"""

import pytest
import torch


@pytest.fixture
def gen():
    """Seeded generator for reproducible tests."""
    return torch.Generator().manual_seed(1234)


@pytest.fixture(params=[torch.float64, torch.complex128], ids=["real", "complex"])
def dtype(request):
    return request.param


def randn(gen, *shape, dtype=torch.float64):
    return torch.randn(shape, generator=gen, dtype=dtype)


def reflector_matrix(v, tau):
    """Dense I - tau v v^H for a full (explicit) vector v."""
    n = v.numel()
    return torch.eye(n, dtype=v.dtype) - tau * torch.outer(v, v.conj())
