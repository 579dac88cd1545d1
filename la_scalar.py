"""
Scalar algebra shared by every kernel: conjugation, real part and the
common scalar/real dtype of a mix of tensors, dtypes and Python numbers.
"""
from __future__ import annotations

import numbers

import torch

_REAL_OF = {
    torch.complex64: torch.float32,
    torch.complex128: torch.float64,
}


def is_complex(x) -> bool:
    if isinstance(x, torch.Tensor):
        return x.is_complex()
    if isinstance(x, torch.dtype):
        return x.is_complex
    if isinstance(x, numbers.Number):
        return isinstance(x, complex)
    raise TypeError(f"unsupported operand {type(x).__name__}")


def conj(x):
    """Complex conjugate; identity for real values."""
    if isinstance(x, torch.Tensor):
        return torch.conj(x) if x.is_complex() else x
    if isinstance(x, complex):
        return x.conjugate()
    return x


def real(x):
    if isinstance(x, torch.Tensor):
        return x.real if x.is_complex() else x
    if isinstance(x, complex):
        return x.real
    return x


def _as_operand(x):
    # dtypes take part in promotion as empty tensors.
    if isinstance(x, torch.dtype):
        return torch.empty((), dtype=x)
    if isinstance(x, (torch.Tensor, numbers.Number)):
        return x
    raise TypeError(f"unsupported operand {type(x).__name__}")


def scalar_type(*operands) -> torch.dtype:
    """
    Common dtype of an expression over `operands`.

    Tensors and dtypes follow torch promotion; Python numbers only lift the
    category (a complex scalar makes a real float64 matrix complex128).
    """
    if not operands:
        raise TypeError("scalar_type() needs at least one operand")
    ops = [_as_operand(x) for x in operands]
    tensors = [x for x in ops if isinstance(x, torch.Tensor)]
    if tensors:
        dtype = tensors[0].dtype
        for t in tensors[1:]:
            dtype = torch.promote_types(dtype, t.dtype)
    else:
        dtype = torch.get_default_dtype()
    for x in ops:
        if not isinstance(x, torch.Tensor):
            dtype = torch.result_type(torch.empty((), dtype=dtype), x)
    return dtype


def real_type(*operands) -> torch.dtype:
    dtype = scalar_type(*operands)
    return _REAL_OF.get(dtype, dtype)
