"""
Apply a block reflector H = I - V T V^H (Columnwise) or I - V^H T V
(Rowwise), or its conjugate transpose, to a matrix from the left or the
right. T comes from larft() with the same direction/storev.
"""
from __future__ import annotations

import torch

from la_base import Direction, Op, Side, StoreV, Uplo, as_enum, check_writable, error_if, trmm_right_


def larfb(side, trans, direction, storev, V: torch.Tensor, T: torch.Tensor,
          C: torch.Tensor, work: torch.Tensor) -> torch.Tensor:
    """
    In place:
      side=Left:  C := op(H) C     work: >= (ncols(C), k)
      side=Right: C := C op(H)     work: >= (nrows(C), k)
    with op(H) = H (NoTrans) or H^H (ConjTrans). Trans means ConjTrans for
    real data.

    Only the rectangular part of V and the strict off-unit triangle are read;
    the unit diagonal and the zero side of the triangle are implied.
    """
    side = as_enum(Side, side, "side", -1)
    trans = as_enum(Op, trans, "trans", -2)
    direction = as_enum(Direction, direction, "direction", -3)
    storev = as_enum(StoreV, storev, "storev", -4)
    error_if(trans is Op.Trans and C.is_complex(), -2,
             "trans=Trans is not defined for complex data; use ConjTrans")
    error_if(V.ndim != 2 or T.ndim != 2 or C.ndim != 2 or work.ndim != 2, -5,
             "V, T, C and work must be matrices")

    Vc = V if storev is StoreV.Columnwise else V.mH
    nv, k = Vc.shape
    m, n = C.shape
    error_if(k > nv, -5, f"more reflectors than their length: k={k} > {nv}")
    error_if(V.dtype != C.dtype, -5, f"V has dtype {V.dtype}, C has {C.dtype}")
    error_if(T.shape[0] < k or T.shape[1] < k, -6, f"T must be at least {k}x{k}")
    error_if(T.dtype != C.dtype, -6, f"T has dtype {T.dtype}, C has {C.dtype}")
    if side is Side.Left:
        error_if(nv != m, -5, f"reflector length {nv} does not match nrows(C)={m}")
        error_if(work.shape[0] < n or work.shape[1] < k, -8,
                 f"work must be at least {n}x{k}, got {tuple(work.shape)}")
    else:
        error_if(nv != n, -5, f"reflector length {nv} does not match ncols(C)={n}")
        error_if(work.shape[0] < m or work.shape[1] < k, -8,
                 f"work must be at least {m}x{k}, got {tuple(work.shape)}")
    error_if(work.dtype != C.dtype, -8, f"work has dtype {work.dtype}, C has {C.dtype}")
    check_writable(C, "C")
    check_writable(work, "work")

    if m == 0 or n == 0 or k == 0:
        return C

    forward = direction is Direction.Forward
    # V = [V1; V2] (Forward) or [V2; V1] (Backward), V1 unit triangular k x k.
    if forward:
        V1, V2 = Vc[:k], Vc[k:]
        v_uplo, t_uplo = Uplo.Lower, Uplo.Upper
    else:
        V1, V2 = Vc[nv - k:], Vc[:nv - k]
        v_uplo, t_uplo = Uplo.Upper, Uplo.Lower
    has_rect = nv > k

    if side is Side.Left:
        # op(H) C = C - V op(T) V^H C ; W = C^H V  (n x k)
        C1, C2 = (C[:k], C[k:]) if forward else (C[m - k:], C[:m - k])
        W = work[:n, :k]
        W.copy_(C1.mH)
        trmm_right_(W, V1, v_uplo, Op.NoTrans, unit=True)
        if has_rect:
            W.addmm_(C2.mH, V2)
        # W := W op(T)^H
        trmm_right_(W, T[:k, :k], t_uplo, Op.ConjTrans if trans is Op.NoTrans else Op.NoTrans)
        if has_rect:
            C2.addmm_(V2, W.mH, alpha=-1)
        trmm_right_(W, V1, v_uplo, Op.ConjTrans, unit=True)
        C1.sub_(W.mH)
    else:
        # C op(H) = C - C V op(T) V^H ; W = C V  (m x k)
        C1, C2 = (C[:, :k], C[:, k:]) if forward else (C[:, n - k:], C[:, :n - k])
        W = work[:m, :k]
        W.copy_(C1)
        trmm_right_(W, V1, v_uplo, Op.NoTrans, unit=True)
        if has_rect:
            W.addmm_(C2, V2)
        trmm_right_(W, T[:k, :k], t_uplo, Op.NoTrans if trans is Op.NoTrans else Op.ConjTrans)
        if has_rect:
            C2.addmm_(W, V2.mH, alpha=-1)
        trmm_right_(W, V1, v_uplo, Op.ConjTrans, unit=True)
        C1.sub_(W)
    return C
