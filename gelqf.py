"""
LQ factorization A = L Q with Householder reflectors, unblocked (gelq2) and
blocked (gelqf), plus application of Q (unmlq).

Q is represented as Q = H(k-1)^H ... H(1)^H H(0)^H, k = min(m, n), with
  H(j) = I - tauw_j * w * w^H,  w[:j] = 0, w[j] = 1,
and conj(w[j+1:]) stored on exit in A[j, j+1:]. In gelqf, tauw_j lives in
TT[j, j % nb], i.e. on the diagonal of the block TT[j0:j0+ib, :ib] that also
holds the block's triangular factor:

  Q^H = (I - W0^H T0 W0) (I - W1^H T1 W1) ...
"""
from __future__ import annotations

import torch

from householder import larf, larfg
from la_base import (Direction, Op, Side, StoreV, as_enum, check_writable,
                     error_if)
from larfb import larfb
from larft import larft


def gelq2(A: torch.Tensor, tauw: torch.Tensor, work: torch.Tensor) -> torch.Tensor:
    """
    Unblocked LQ factorization of an m x n panel, in place.

    - A: (m,n); on exit L on and below the diagonal, reflectors above it.
    - tauw: vector with >= min(m,n) entries (may be a strided view).
    - work: vector with >= m entries.
    """
    error_if(A.ndim != 2, -1, "A must be a matrix")
    m, n = A.shape
    k = min(m, n)
    error_if(tauw.ndim != 1 or tauw.numel() < k, -2, f"tauw must hold at least {k} values")
    error_if(tauw.dtype != A.dtype, -2, f"tauw has dtype {tauw.dtype}, A has {A.dtype}")
    error_if(work.ndim != 1 or work.numel() < m, -3, f"work too small: {work.numel()} < {m}")
    error_if(work.dtype != A.dtype, -3, f"work has dtype {work.dtype}, A has {A.dtype}")
    check_writable(A, "A")
    check_writable(tauw, "tauw")
    check_writable(work, "work")

    for j in range(k):
        w = A[j, j:]
        # Reflect the conjugated row so that A[j, j:] H(j) = [beta, 0, ..., 0].
        w.conj_physical_()
        tauw[j] = larfg(w)
        if j + 1 < m:
            larf(Side.Right, w, tauw[j], A[j + 1:, j:], work[:m - j - 1])
        w[1:].conj_physical_()
    return A


def gelqf(A: torch.Tensor, TT: torch.Tensor, work: torch.Tensor, nb: int) -> torch.Tensor:
    """
    Blocked LQ factorization of an m x n matrix, in place.

    - A: (m,n); on exit as in gelq2.
    - TT: (>=m, >=nb); on exit TT[j:j+ib, :ib] holds the upper triangular
      factor of block j with tauw on its diagonal. Rows below the current
      block serve as workspace for the trailing update.
    - work: vector with >= m entries.
    - nb: block size (>= 1).
    """
    error_if(A.ndim != 2, -1, "A must be a matrix")
    m, n = A.shape
    k = min(m, n)
    error_if(TT.ndim != 2 or TT.shape[0] < m or TT.shape[1] < nb, -2,
             f"TT must be at least {m}x{nb}, got {tuple(TT.shape)}")
    error_if(TT.dtype != A.dtype, -2, f"TT has dtype {TT.dtype}, A has {A.dtype}")
    error_if(work.ndim != 1 or work.numel() < m, -3, f"work too small: {work.numel()} < {m}")
    error_if(work.dtype != A.dtype, -3, f"work has dtype {work.dtype}, A has {A.dtype}")
    error_if(nb < 1, -4, f"nb must be positive, got {nb}")
    check_writable(A, "A")
    check_writable(TT, "TT")
    check_writable(work, "work")

    for j in range(0, k, nb):
        ib = min(nb, k - j)

        # LQ of the current block A[j:j+ib, j:n]
        TT1 = TT[j:j + ib, :ib]
        A11 = A[j:j + ib, j:]
        tauw1 = TT1.diagonal()
        gelq2(A11, tauw1, work)

        # Triangular factor of H = H(j) H(j+1) ... H(j+ib-1)
        larft(Direction.Forward, StoreV.Rowwise, A11, tauw1, TT1)

        if j + ib < m:
            # Apply H to A[j+ib:m, j:n] from the right
            A12 = A[j + ib:, j:]
            work1 = TT[j + ib:m, :ib]
            larfb(Side.Right, Op.NoTrans, Direction.Forward, StoreV.Rowwise,
                  A11, TT1, A12, work1)
    return A


def unmlq(side, trans, A: torch.Tensor, TT: torch.Tensor, C: torch.Tensor,
          work: torch.Tensor, nb: int) -> torch.Tensor:
    """
    Overwrite C with Q C, Q^H C, C Q or C Q^H, Q from gelqf(A, TT, _, nb).

    - C: (n, p) for side=Left, (p, n) for side=Right.
    - work: (>=p, >=nb).
    """
    side = as_enum(Side, side, "side", -1)
    trans = as_enum(Op, trans, "trans", -2)
    error_if(trans is Op.Trans and C.is_complex(), -2,
             "trans=Trans is not defined for complex data; use ConjTrans")
    error_if(A.ndim != 2 or C.ndim != 2, -3, "A and C must be matrices")
    m, n = A.shape
    k = min(m, n)
    error_if(TT.ndim != 2 or TT.shape[0] < k or TT.shape[1] < min(nb, k), -4,
             f"TT too small: {tuple(TT.shape)}")
    error_if(TT.dtype != A.dtype, -4, f"TT has dtype {TT.dtype}, A has {A.dtype}")
    error_if(nb < 1, -7, f"nb must be positive, got {nb}")
    if side is Side.Left:
        error_if(C.shape[0] != n, -5, f"nrows(C)={C.shape[0]} must equal ncols(A)={n}")
        p = C.shape[1]
    else:
        error_if(C.shape[1] != n, -5, f"ncols(C)={C.shape[1]} must equal ncols(A)={n}")
        p = C.shape[0]
    error_if(C.dtype != A.dtype, -5, f"C has dtype {C.dtype}, A has {A.dtype}")
    error_if(work.ndim != 2 or work.shape[0] < p or work.shape[1] < min(nb, k), -6,
             f"work must be at least {p}x{nb}, got {tuple(work.shape)}")
    error_if(work.dtype != C.dtype, -6, f"work has dtype {work.dtype}, C has {C.dtype}")
    check_writable(C, "C")

    # Q^H = Hb0 Hb1 ... with Hb = I - V^H T V per block.
    # Q C = ... Hb1^H Hb0^H C and C Q^H = C Hb0 Hb1 ... walk blocks forward.
    notrans = trans is Op.NoTrans
    blocks = list(range(0, k, nb))
    if notrans != (side is Side.Left):
        blocks.reverse()
    block_op = Op.ConjTrans if notrans else Op.NoTrans

    for j in blocks:
        ib = min(nb, k - j)
        V = A[j:j + ib, j:]
        T = TT[j:j + ib, :ib]
        if side is Side.Left:
            larfb(Side.Left, block_op, Direction.Forward, StoreV.Rowwise,
                  V, T, C[j:, :], work)
        else:
            larfb(Side.Right, block_op, Direction.Forward, StoreV.Rowwise,
                  V, T, C[:, j:], work)
    return C
