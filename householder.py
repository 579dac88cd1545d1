"""
Elementary Householder reflectors: generation (larfg) and application (larf).

A reflector is H = I - tau * v * v^H with v[0] == 1. The leading slot of
the vector that carries v is never read as v[0]; larfg stores beta there.
"""
from __future__ import annotations

import math

import torch

from la_base import Side, as_enum, check_writable, error_if

# Upper bound on the number of rescalings of a tiny beta.
MAX_RESCALE = 20


def _parts(alpha: torch.Tensor, x_tail: torch.Tensor) -> tuple[float, float, float]:
    alphr = float(alpha.real)
    alphi = float(alpha.imag) if alpha.is_complex() else 0.0
    xnorm = float(torch.linalg.vector_norm(x_tail)) if x_tail.numel() else 0.0
    return alphr, alphi, xnorm


def larfg(x: torch.Tensor) -> torch.Tensor:
    """
    Householder for a (real or complex) 1D vector x, in place.

    Finds tau and v with v[0]=1 such that
      H^H x = [beta, 0, ..., 0]^T,  H = I - tau v v^H,  beta real.
    On exit x[0] = beta and x[1:] = v[1:]. Returns tau as a 0-dim tensor.

    If x[1:] is zero and x[0] is real the reflector is the identity
    (tau=0) and x is left as is.
    """
    error_if(x.ndim != 1, -1, f"x must be a vector, got shape {tuple(x.shape)}")
    zero = torch.zeros((), dtype=x.dtype, device=x.device)
    if x.numel() == 0:
        return zero

    alpha = x[0].clone()
    x_tail = x[1:]
    alphr, alphi, xnorm = _parts(alpha, x_tail)
    if xnorm == 0.0 and alphi == 0.0:
        return zero

    beta = -math.copysign(math.hypot(alphr, alphi, xnorm), alphr)

    finfo = torch.finfo(alpha.real.dtype)
    safmin = finfo.tiny / finfo.eps
    knt = 0
    if abs(beta) < safmin:
        # beta may be inaccurate; scale x up and recompute.
        rsafmn = 1.0 / safmin
        while abs(beta) < safmin and knt < MAX_RESCALE:
            knt += 1
            x_tail.mul_(rsafmn)
            beta *= rsafmn
            alpha = alpha * rsafmn
        alphr, alphi, xnorm = _parts(alpha, x_tail)
        beta = -math.copysign(math.hypot(alphr, alphi, xnorm), alphr)

    if x.is_complex():
        tau = zero + complex((beta - alphr) / beta, -alphi / beta)
    else:
        tau = zero + (beta - alphr) / beta

    x_tail.mul_(1.0 / (alpha - beta))

    x[0] = beta * safmin ** knt
    return tau


def larf(side, v: torch.Tensor, tau, C: torch.Tensor, work: torch.Tensor) -> torch.Tensor:
    """
    Apply H = I - tau v v^H to C in place (v[0] is taken as 1):
      side=Left:  C := H C      (work: >= ncols(C))
      side=Right: C := C H      (work: >= nrows(C))
    Pass conj(tau) to apply H^H instead.
    """
    side = as_enum(Side, side, "side", -1)
    error_if(v.ndim != 1, -2, "v must be a vector")
    error_if(C.ndim != 2, -4, "C must be a matrix")
    m, n = C.shape
    if side is Side.Left:
        error_if(v.numel() != m, -2, f"len(v)={v.numel()} does not match nrows(C)={m}")
        error_if(work.numel() < n, -5, f"work too small: {work.numel()} < {n}")
    else:
        error_if(v.numel() != n, -2, f"len(v)={v.numel()} does not match ncols(C)={n}")
        error_if(work.numel() < m, -5, f"work too small: {work.numel()} < {m}")
    error_if(v.dtype != C.dtype, -2, f"v has dtype {v.dtype}, C has {C.dtype}")
    error_if(work.dtype != C.dtype, -5, f"work has dtype {work.dtype}, C has {C.dtype}")
    check_writable(C, "C")
    if m == 0 or n == 0:
        return C

    v1 = v[1:]
    if side is Side.Left:
        # w = (v^H C)^T ; C -= tau v w^T
        w = work[:n]
        w.copy_(C[0, :])
        if v1.numel():
            w.addmv_(C[1:, :].mT, v1.conj())
        w.mul_(-tau)
        C[0, :].add_(w)
        if v1.numel():
            C[1:, :].addr_(v1, w)
    else:
        # w = C v ; C -= tau w v^H
        w = work[:m]
        w.copy_(C[:, 0])
        if v1.numel():
            w.addmv_(C[:, 1:], v1)
        w.mul_(-tau)
        C[:, 0].add_(w)
        if v1.numel():
            C[:, 1:].addr_(w, v1.conj())
    return C
