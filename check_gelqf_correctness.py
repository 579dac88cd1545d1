#!/usr/bin/env python3
"""
Correctness check for gelqf: factor A = L Q, rebuild Q from the reflectors and
the T blocks (unmlq), and report the reconstruction and orthogonality errors.
"""
from __future__ import annotations

import argparse

import torch

from gelqf import gelqf, unmlq


def lq_factors(A: torch.Tensor, nb: int) -> tuple[torch.Tensor, torch.Tensor]:
    """Return (L, Q) with A = L Q, L: (m,n) lower trapezoidal, Q: (n,n) unitary."""
    m, n = A.shape
    F = A.clone()
    TT = torch.zeros((m, nb), dtype=A.dtype, device=A.device)
    work = torch.empty((m,), dtype=A.dtype, device=A.device)
    gelqf(F, TT, work, nb)

    L = torch.tril(F)
    Q = torch.eye(n, dtype=A.dtype, device=A.device)
    work2 = torch.empty((n, nb), dtype=A.dtype, device=A.device)
    unmlq("L", "N", F, TT, Q, work2, nb)
    return L, Q


def main() -> None:
    ap = argparse.ArgumentParser()
    ap.add_argument("--m", type=int, default=300)
    ap.add_argument("--n", type=int, default=400)
    ap.add_argument("--nb", type=int, default=32)
    ap.add_argument("--dtype", type=str, default="float64",
                    choices=["float32", "float64", "complex64", "complex128"])
    ap.add_argument("--seed", type=int, default=0)
    ap.add_argument("--device", type=str, default="cpu")
    args = ap.parse_args()

    if args.device.startswith("cuda") and not torch.cuda.is_available():
        raise SystemExit("CUDA not available")

    torch.manual_seed(args.seed)
    dtype = getattr(torch, args.dtype)
    A = torch.randn((args.m, args.n), dtype=dtype, device=args.device)

    L, Q = lq_factors(A, args.nb)
    k = min(args.m, args.n)
    eye = torch.eye(args.n, dtype=dtype, device=args.device)

    resid = torch.linalg.matrix_norm(A - L[:, :k] @ Q[:k, :]).item()
    rel = resid / torch.linalg.matrix_norm(A).item()
    orth = torch.linalg.matrix_norm(Q @ Q.mH - eye).item()
    print(f"m={args.m} n={args.n} nb={args.nb} dtype={args.dtype} "
          f"||A-LQ||/||A||={rel:.3e} ||QQ^H-I||={orth:.3e}")


if __name__ == "__main__":
    main()
