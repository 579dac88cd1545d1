"""
Triangular factor T of a block reflector (compact WY representation).

  Forward:   H = H(0) H(1) ... H(k-1),  T upper triangular
  Backward:  H = H(k-1) ... H(1) H(0),  T lower triangular
  Columnwise: H = I - V T V^H   (V is n x k, column i defines H(i))
  Rowwise:    H = I - V^H T V   (V is k x n, row i holds v_i^H)

Forward reflector i has v_i[i] = 1 and zeros above it; Backward reflector i
has v_i[n-k+i] = 1 and zeros below it. Those entries of V are implied and
never read.
"""
from __future__ import annotations

import torch

from la_base import Direction, Op, StoreV, Uplo, as_enum, check_writable, error_if, trmm_right_


def _reflector_columns(V: torch.Tensor, storev: StoreV) -> torch.Tensor:
    # Rowwise storage is the conjugate transpose of the columnwise one.
    return V if storev is StoreV.Columnwise else V.mH


def larft(direction, storev, V: torch.Tensor, tau: torch.Tensor, T: torch.Tensor) -> torch.Tensor:
    """
    Form the k x k triangular factor T of a block of k elementary reflectors.

    `tau` may be a view of T.diagonal(); only the triangle of T selected by
    `direction` (plus its diagonal) is written.
    """
    direction = as_enum(Direction, direction, "direction", -1)
    storev = as_enum(StoreV, storev, "storev", -2)
    error_if(V.ndim != 2, -3, "V must be a matrix")
    Vc = _reflector_columns(V, storev)
    n, k = Vc.shape
    error_if(k > n, -3, f"more reflectors than their length: k={k} > n={n}")
    error_if(tau.ndim != 1 or tau.numel() < k, -4, f"tau must hold at least {k} values")
    error_if(tau.dtype != V.dtype, -4, f"tau has dtype {tau.dtype}, V has {V.dtype}")
    error_if(T.ndim != 2 or T.shape[0] < k or T.shape[1] < k, -5,
             f"T must be at least {k}x{k}, got {tuple(T.shape)}")
    error_if(T.dtype != V.dtype, -5, f"T has dtype {T.dtype}, V has {V.dtype}")
    check_writable(T, "T")
    if k == 0:
        return T

    if direction is Direction.Forward:
        for i in range(k):
            T[i, i] = tau[i]
            if i == 0:
                continue
            # T[:i, i] = -tau_i * V[i:, :i]^H v_i, with v_i[i] = 1.
            t = T[:i, i]
            t.copy_(Vc[i, :i].conj())
            if i + 1 < n:
                t.addmv_(Vc[i + 1:, :i].mH, Vc[i + 1:, i])
            t.mul_(-tau[i])
            # T[:i, i] = T[:i, :i] @ T[:i, i]
            trmm_right_(t.unsqueeze(0), T[:i, :i], Uplo.Upper, Op.Trans)
    else:
        for i in range(k - 1, -1, -1):
            T[i, i] = tau[i]
            if i == k - 1:
                continue
            p = n - k + i
            # T[i+1:, i] = -tau_i * V[:p+1, i+1:]^H v_i, with v_i[p] = 1.
            t = T[i + 1:k, i]
            t.copy_(Vc[p, i + 1:].conj())
            if p > 0:
                t.addmv_(Vc[:p, i + 1:].mH, Vc[:p, i])
            t.mul_(-tau[i])
            trmm_right_(t.unsqueeze(0), T[i + 1:k, i + 1:k], Uplo.Lower, Op.Trans)
    return T
