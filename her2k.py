"""
Hermitian rank-2k update (BLAS her2k), generic over real and complex dtypes:

    C := alpha A B^H + conj(alpha) B A^H + beta C     (trans = NoTrans)
    C := alpha A^H B + conj(alpha) B^H A + beta C     (trans = ConjTrans)

C is n x n Hermitian; A, B are n x k (NoTrans) or k x n (ConjTrans). All
three are 1-D buffers addressed through a leading dimension, in either
layout. Row-major calls are rewritten into the equivalent column-major call
on the same buffers, so both layouts share one code path.
"""
from __future__ import annotations

import torch

from la_base import (Layout, Op, Uplo, as_enum, check_writable, error_if,
                     matrix_view, required_length)
from la_scalar import conj, is_complex, real, scalar_type


def _is_zero_imag(x) -> bool:
    return not is_complex(x) or complex(x).imag == 0


def _off_diagonal(C: torch.Tensor, j: int, uplo: Uplo):
    """Strictly off-diagonal parts of column j that belong to the uplo triangle."""
    n = C.shape[0]
    parts = []
    if uplo is not Uplo.Lower and j > 0:
        parts.append(C[:j, j])
    if uplo is not Uplo.Upper and j + 1 < n:
        parts.append(C[j + 1:, j])
    return parts


def _scale_triangle_(C: torch.Tensor, uplo: Uplo, beta: float) -> None:
    """beta * C on the uplo triangle with real diagonal; beta == 0 writes zeros."""
    n = C.shape[0]
    for j in range(n):
        for cj in _off_diagonal(C, j, uplo):
            if beta == 0:
                cj.zero_()
            else:
                cj.mul_(beta)
        C[j, j] = 0 if beta == 0 else beta * real(C[j, j])


def _mirror_upper_(C: torch.Tensor) -> None:
    """C[i, j] = conj(C[j, i]) for i > j."""
    n = C.shape[0]
    for j in range(n - 1):
        C[j + 1:, j].copy_(C[j, j + 1:].conj())


def _update_notrans_(C, A, B, alpha, beta, upper: bool) -> None:
    n, k = A.shape
    for j in range(n):
        rows = slice(0, j) if upper else slice(j + 1, n)
        cj = C[rows, j]
        if beta == 0:
            cj.zero_()
            d = torch.zeros((), dtype=C.real.dtype, device=C.device)
        else:
            cj.mul_(beta)
            d = beta * real(C[j, j])
        if k > 0:
            alpha_conj_bj = alpha * conj(B[j, :])
            conj_alpha_aj = conj(alpha * A[j, :])
            cj.addmv_(A[rows, :], alpha_conj_bj)
            cj.addmv_(B[rows, :], conj_alpha_aj)
            d = d + 2 * real(torch.dot(A[j, :], alpha_conj_bj))
        C[j, j] = d


def _update_conjtrans_(C, A, B, alpha, beta, upper: bool) -> None:
    k, n = A.shape
    for j in range(n):
        rows = slice(0, j + 1) if upper else slice(j, n)
        jj = j if upper else 0
        sum1 = A[:, rows].mH @ B[:, j]
        sum2 = B[:, rows].mH @ A[:, j]
        upd = alpha * sum1 + conj(alpha) * sum2
        cj = C[rows, j]
        if beta == 0:
            d = real(upd[jj])
            cj.copy_(upd)
        else:
            d = real(upd[jj]) + beta * real(C[j, j])
            cj.mul_(beta).add_(upd)
        C[j, j] = d


def her2k(layout, uplo, trans, n: int, k: int, alpha,
          A: torch.Tensor, lda: int, B: torch.Tensor, ldb: int,
          beta, C: torch.Tensor, ldc: int, *, triton_cfg: dict | None = None) -> torch.Tensor:
    """
    Hermitian rank-2k update on the `uplo` triangle of C (in-place).

    - layout: Layout.ColMajor / Layout.RowMajor ('C' / 'R').
    - uplo: Upper / Lower touch one triangle; General updates the upper one
      and fills the lower one by conjugate mirroring.
    - trans: NoTrans or ConjTrans; Trans is ConjTrans for real data and
      illegal for complex data.
    - alpha: scalar, may be complex. If zero, A and B are not read.
    - beta: real scalar. If zero, C need not be set on input.
    - triton_cfg: tile configuration for the Triton path (real CUDA data).

    Raises InvalidArgument (with `info` = BLAS argument position) before
    touching C, AccessDenied if C cannot be written in place.
    """
    layout = as_enum(Layout, layout, "layout", 1)
    uplo = as_enum(Uplo, uplo, "uplo", 2)
    trans = as_enum(Op, trans, "trans", 3)
    error_if(n < 0, 4, f"n={n} must be >= 0")
    error_if(k < 0, 5, f"k={k} must be >= 0")

    error_if(A.ndim != 1, 7, "A must be a 1-D buffer")
    error_if(B.ndim != 1, 9, "B must be a 1-D buffer")
    error_if(C.ndim != 1, 12, "C must be a 1-D buffer")
    scalar_t = scalar_type(A, B, C)
    if trans is Op.Trans:
        error_if(scalar_t.is_complex, 3,
                 "trans=Trans is illegal for complex data (see syr2k); use ConjTrans")
        trans = Op.ConjTrans
    error_if(not scalar_t.is_complex and not _is_zero_imag(alpha), 6,
             f"complex alpha={alpha!r} with real data")
    error_if(not _is_zero_imag(beta), 11, f"beta={beta!r} must be real")
    error_if(C.dtype != scalar_t, 12,
             f"C has dtype {C.dtype}, cannot hold the {scalar_t} result")
    beta = real(beta)
    if isinstance(beta, torch.Tensor):
        beta = beta.item()
    if not scalar_t.is_complex:
        alpha = real(alpha)

    # adapt if row major
    if layout is Layout.RowMajor:
        if uplo is Uplo.Lower:
            uplo = Uplo.Upper
        elif uplo is Uplo.Upper:
            uplo = Uplo.Lower
        trans = Op.ConjTrans if trans is Op.NoTrans else Op.NoTrans
        alpha = conj(alpha)

    # column-major extents of A and B
    rows, cols = (n, k) if trans is Op.NoTrans else (k, n)
    error_if(lda < max(1, rows), 8, f"lda={lda} must be >= {max(1, rows)}")
    error_if(ldb < max(1, rows), 10, f"ldb={ldb} must be >= {max(1, rows)}")
    error_if(ldc < max(1, n), 13, f"ldc={ldc} must be >= {max(1, n)}")
    error_if(A.numel() < required_length(rows, cols, lda), 7,
             f"A holds {A.numel()} elements, needs {required_length(rows, cols, lda)}")
    error_if(B.numel() < required_length(rows, cols, ldb), 9,
             f"B holds {B.numel()} elements, needs {required_length(rows, cols, ldb)}")
    error_if(C.numel() < required_length(n, n, ldc), 12,
             f"C holds {C.numel()} elements, needs {required_length(n, n, ldc)}")
    check_writable(C, "C")

    # quick return
    if n == 0:
        return C

    Cv = matrix_view(C, n, n, ldc)

    if alpha == 0:
        if beta != 1:
            _scale_triangle_(Cv, uplo, beta)
        elif Cv.is_complex():
            Cv.diagonal().imag.zero_()
        if uplo is Uplo.General:
            _mirror_upper_(Cv)
        return C

    Av = matrix_view(A, rows, cols, lda).to(scalar_t)
    Bv = matrix_view(B, rows, cols, ldb).to(scalar_t)

    use_triton = False
    if Cv.is_cuda and not scalar_t.is_complex:
        import triton_her2k
        use_triton = triton_her2k.can_use_triton(Cv)

    if use_triton:
        # Kernel computes alpha (A^T B + B^T A) with A, B shaped (k, n).
        At, Bt = (Av.mT, Bv.mT) if trans is Op.NoTrans else (Av, Bv)
        triton_her2k.her2k_triton_(Cv, At, Bt, alpha=float(alpha), beta=float(beta),
                                   uplo="L" if uplo is Uplo.Lower else "U",
                                   **(triton_cfg or {}))
    elif trans is Op.NoTrans:
        _update_notrans_(Cv, Av, Bv, alpha, beta, upper=uplo is not Uplo.Lower)
    else:
        _update_conjtrans_(Cv, Av, Bv, alpha, beta, upper=uplo is not Uplo.Lower)

    if uplo is Uplo.General:
        _mirror_upper_(Cv)
    return C
