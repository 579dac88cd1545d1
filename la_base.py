"""
Enumerations, errors and strided-view helpers used by the LAPACK/BLAS-style
kernels (larfg/larf/larft/larfb/gelqf/her2k).

Kernels operate in place on caller-owned torch tensors. A "matrix view" is
any 2-D tensor; BLAS-style entry points take 1-D buffers plus a leading
dimension and build the 2-D view with `matrix_view()`.
"""
from __future__ import annotations

import enum

import torch


class Layout(enum.Enum):
    ColMajor = "C"
    RowMajor = "R"


class Uplo(enum.Enum):
    Upper = "U"
    Lower = "L"
    General = "G"


class Op(enum.Enum):
    NoTrans = "N"
    Trans = "T"
    ConjTrans = "C"


class Side(enum.Enum):
    Left = "L"
    Right = "R"


class Direction(enum.Enum):
    Forward = "F"
    Backward = "B"


class StoreV(enum.Enum):
    Columnwise = "C"
    Rowwise = "R"


class Access(enum.Enum):
    Dense = "dense"
    ReadOnly = "readonly"


class LinalgError(Exception):
    """Base class for errors raised by the kernels."""


class InvalidArgument(LinalgError, ValueError):
    """
    An argument violates the calling contract.

    `info` is the position of the offending argument: positive for the
    BLAS-style routines (her2k), negative for the LAPACK-style ones, as the
    reference libraries report it.
    """

    def __init__(self, message: str, info: int = 0):
        super().__init__(message)
        self.info = info


class AccessDenied(LinalgError, PermissionError):
    """The target tensor cannot be mutated densely in place."""


def error_if(cond: bool, info: int, message: str) -> None:
    if cond:
        raise InvalidArgument(message, info)


def as_enum(cls, value, name: str, info: int):
    """Accept an enum member or its one-letter code ('L', 'N', ...)."""
    if isinstance(value, cls):
        return value
    if isinstance(value, str):
        for member in cls:
            if member.value == value.upper():
                return member
    raise InvalidArgument(f"{name}={value!r} is not a valid {cls.__name__}", info)


def write_policy(t: torch.Tensor) -> Access:
    """Report whether `t` may be written element by element in place."""
    if any(st == 0 and sz > 1 for st, sz in zip(t.stride(), t.shape)):
        # expand()/broadcast views alias the same element many times.
        return Access.ReadOnly
    if t.is_leaf and t.requires_grad:
        return Access.ReadOnly
    if t.is_inference() and not torch.is_inference_mode_enabled():
        return Access.ReadOnly
    return Access.Dense


def access_denied(required: Access, policy: Access) -> bool:
    return required is Access.Dense and policy is not Access.Dense


def check_writable(t: torch.Tensor, name: str) -> None:
    if access_denied(Access.Dense, write_policy(t)):
        raise AccessDenied(f"{name}: dense in-place write is not permitted on this tensor")


def required_length(nrows: int, ncols: int, ld: int) -> int:
    """Minimum buffer length holding an nrows x ncols matrix with leading dim ld."""
    if nrows == 0 or ncols == 0:
        return 0
    return (ncols - 1) * ld + nrows


def matrix_view(buf: torch.Tensor, nrows: int, ncols: int, ld: int,
                layout: Layout = Layout.ColMajor) -> torch.Tensor:
    """
    2-D strided view of a 1-D buffer.

    Element (i, j) lives at offset i + j*ld (ColMajor) or i*ld + j
    (RowMajor), in units of the buffer's own stride.
    """
    assert buf.ndim == 1
    s = buf.stride(0)
    if layout is Layout.ColMajor:
        return buf.as_strided((nrows, ncols), (s, ld * s), buf.storage_offset())
    return buf.as_strided((nrows, ncols), (ld * s, s), buf.storage_offset())


def trmm_right_(W: torch.Tensor, tri: torch.Tensor, uplo: Uplo,
                op: Op = Op.NoTrans, unit: bool = False) -> torch.Tensor:
    """
    In place W := W @ op(tri) for a k x k triangular `tri`.

    Only the `uplo` triangle of `tri` is read; with unit=True its diagonal is
    not read either and taken as 1.
    """
    k = tri.shape[0]
    if op is Op.NoTrans:
        M, upper = tri, uplo is Uplo.Upper
    elif op is Op.Trans:
        M, upper = tri.mT, uplo is Uplo.Lower
    else:
        M, upper = tri.mH, uplo is Uplo.Lower

    # Column j of W @ M only depends on columns on one side of j, so walking
    # away from that side never reads an already updated column.
    cols = range(k - 1, -1, -1) if upper else range(k)
    for j in cols:
        wj = W[:, j]
        if not unit:
            wj.mul_(M[j, j])
        if upper:
            if j > 0:
                wj.addmv_(W[:, :j], M[:j, j])
        elif j + 1 < k:
            wj.addmv_(W[:, j + 1:], M[j + 1:, j])
    return W
