"""
Triton path of her2k for real CUDA data, where the Hermitian rank-2k update
reduces to the symmetric one:

    C := alpha * (A^T B + B^T A) + beta * C,   A, B: (k, n), C: (n, n)

Only the requested triangle of C is written. her2k() routes real CUDA calls
here after its argument checks and layout normalization.
"""
from __future__ import annotations

import argparse

import torch
import triton
import triton.language as tl
import triton.testing

from her2k import her2k

DEFAULT_CFG = dict(block_m=64, block_n=64, block_k=16, num_warps=4, num_stages=3)

TUNE_CONFIGS = [
    dict(block_m=128, block_n=64, num_warps=4, num_stages=3),
    dict(block_m=128, block_n=64, num_warps=8, num_stages=3),
    dict(block_m=64, block_n=64, num_warps=4, num_stages=4),
    dict(block_m=64, block_n=128, num_warps=4, num_stages=3),
    dict(block_m=32, block_n=32, num_warps=2, num_stages=3),
]


@triton.jit
def her2k_tile_kernel(
    C_ptr, A_ptr, B_ptr,
    n, k,
    sc_row, sc_col,
    sa_k, sa_n,
    sb_k, sb_n,
    alpha: tl.constexpr,
    beta: tl.constexpr,
    LOWER: tl.constexpr,
    BLOCK_M: tl.constexpr,
    BLOCK_N: tl.constexpr,
    BLOCK_K: tl.constexpr,
):
    """
    One (BLOCK_M, BLOCK_N) tile of C per program:
      C[r, c] = alpha * sum_l (A[l, r] B[l, c] + B[l, r] A[l, c]) + beta * C[r, c]
    accumulated in fp64 over k in BLOCK_K chunks.
    """
    row0 = tl.program_id(0) * BLOCK_M
    col0 = tl.program_id(1) * BLOCK_N
    # tile entirely on the other side of the diagonal
    if LOWER:
        if row0 + BLOCK_M <= col0:
            return
    else:
        if row0 >= col0 + BLOCK_N:
            return

    rows = row0 + tl.arange(0, BLOCK_M)
    cols = col0 + tl.arange(0, BLOCK_N)
    in_rows = rows < n
    in_cols = cols < n
    if LOWER:
        keep = rows[:, None] >= cols[None, :]
    else:
        keep = rows[:, None] <= cols[None, :]
    keep = keep & in_rows[:, None] & in_cols[None, :]

    acc = tl.zeros((BLOCK_M, BLOCK_N), dtype=tl.float64)
    for l0 in range(0, k, BLOCK_K):
        ls = l0 + tl.arange(0, BLOCK_K)
        in_k = ls < k
        row_mask = in_rows[:, None] & in_k[None, :]
        col_mask = in_k[:, None] & in_cols[None, :]
        a_r = tl.load(A_ptr + rows[:, None] * sa_n + ls[None, :] * sa_k, mask=row_mask, other=0.0)
        b_r = tl.load(B_ptr + rows[:, None] * sb_n + ls[None, :] * sb_k, mask=row_mask, other=0.0)
        a_c = tl.load(A_ptr + ls[:, None] * sa_k + cols[None, :] * sa_n, mask=col_mask, other=0.0)
        b_c = tl.load(B_ptr + ls[:, None] * sb_k + cols[None, :] * sb_n, mask=col_mask, other=0.0)
        acc += tl.dot(a_r.to(tl.float64), b_c.to(tl.float64))
        acc += tl.dot(b_r.to(tl.float64), a_c.to(tl.float64))

    out = alpha * acc
    c_ptrs = C_ptr + rows[:, None] * sc_row + cols[None, :] * sc_col
    # beta == 0: C is not read, so it need not be initialized.
    if beta != 0.0:
        out += beta * tl.load(c_ptrs, mask=keep, other=0.0).to(tl.float64)
    tl.store(c_ptrs, out.to(C_ptr.dtype.element_ty), mask=keep)


def can_use_triton(C: torch.Tensor) -> bool:
    return C.is_cuda and C.dtype in (torch.float32, torch.float64)


def her2k_triton_(
    C: torch.Tensor,
    A: torch.Tensor,
    B: torch.Tensor,
    *,
    alpha: float = 1.0,
    beta: float = 1.0,
    uplo: str = "L",
    block_m: int = DEFAULT_CFG["block_m"],
    block_n: int = DEFAULT_CFG["block_n"],
    block_k: int = DEFAULT_CFG["block_k"],
    num_warps: int = DEFAULT_CFG["num_warps"],
    num_stages: int = DEFAULT_CFG["num_stages"],
):
    """
    Real rank-2k update of the uplo triangle of C (in-place), any strides.

      C: (n, n) float32/float64 on CUDA
      A, B: (k, n), same dtype and device as C
    """
    assert can_use_triton(C)
    assert A.device == C.device and B.device == C.device
    assert A.dtype == C.dtype and B.dtype == C.dtype
    assert C.ndim == 2 and C.shape[0] == C.shape[1]
    assert A.ndim == 2 and A.shape == B.shape and A.shape[1] == C.shape[0]
    assert uplo in ("L", "U")
    k, n = A.shape
    if n == 0:
        return C

    grid = (triton.cdiv(n, block_m), triton.cdiv(n, block_n))
    her2k_tile_kernel[grid](
        C, A, B,
        n, k,
        C.stride(0), C.stride(1),
        A.stride(0), A.stride(1),
        B.stride(0), B.stride(1),
        alpha=float(alpha),
        beta=float(beta),
        LOWER=uplo == "L",
        BLOCK_M=block_m,
        BLOCK_N=block_n,
        BLOCK_K=block_k,
        num_warps=num_warps,
        num_stages=num_stages,
    )
    return C


def tune_her2k(C, A, B, *, alpha, beta, uplo, block_k=16, budget_ms=1000.0):
    """Time every TUNE_CONFIGS entry on the given operands; return (ms, cfg) of the fastest."""
    best = None
    for cfg in TUNE_CONFIGS:
        cfg = dict(cfg, block_k=block_k)

        def run(cfg=cfg):
            her2k_triton_(C, A, B, alpha=alpha, beta=beta, uplo=uplo, **cfg)

        # compile outside the timed region
        run()
        torch.cuda.synchronize()
        ms = triton.testing.do_bench(run, warmup=1, rep=5)
        label = " ".join(f"{key}={val}" for key, val in cfg.items())
        if ms > budget_ms:
            print(f"config {label} over budget ({ms:.3f} ms), skipped")
            continue
        print(f"config {label} time={ms:.3f} ms")
        if best is None or ms < best[0]:
            best = (ms, cfg)

    if best is None:
        raise RuntimeError("no her2k config finished within the budget")
    return best


def main():
    ap = argparse.ArgumentParser()
    ap.add_argument("--n", type=int, default=4096)
    ap.add_argument("--k", type=int, default=64)
    ap.add_argument("--uplo", type=str, default="L", choices=["L", "U", "G"])
    ap.add_argument("--trans", type=str, default="N", choices=["N", "C"])
    ap.add_argument("--dtype", type=str, default="float64", choices=["float32", "float64"])
    ap.add_argument("--block-m", type=int, default=DEFAULT_CFG["block_m"])
    ap.add_argument("--block-n", type=int, default=DEFAULT_CFG["block_n"])
    ap.add_argument("--block-k", type=int, default=DEFAULT_CFG["block_k"])
    ap.add_argument("--warps", type=int, default=DEFAULT_CFG["num_warps"])
    ap.add_argument("--stages", type=int, default=DEFAULT_CFG["num_stages"])
    ap.add_argument("--tune", action="store_true", help="time every entry of TUNE_CONFIGS")
    ap.add_argument("--budget-ms", type=float, default=1000.0, help="per-config limit during --tune")
    ap.add_argument("--check", action="store_true", help="compare against the CPU her2k")
    ap.add_argument("--bench", action="store_true")
    ap.add_argument("--seed", type=int, default=0)
    args = ap.parse_args()

    if not torch.cuda.is_available():
        raise SystemExit("CUDA not available")

    dtype = getattr(torch, args.dtype)
    torch.manual_seed(args.seed)
    n, k = args.n, args.k
    alpha, beta = 1.0, 0.5
    # column-major buffers: A, B are n x k (N) or k x n (C), C is n x n
    ld = n if args.trans == "N" else k
    A = torch.randn(n * k, device="cuda", dtype=dtype)
    B = torch.randn(n * k, device="cuda", dtype=dtype)
    C = torch.randn(n * n, device="cuda", dtype=dtype)
    cfg = dict(block_m=args.block_m, block_n=args.block_n, block_k=args.block_k,
               num_warps=args.warps, num_stages=args.stages)
    flops = (n * (n + 1) // 2) * (4 * k)

    def run_her2k(Cbuf):
        her2k("C", args.uplo, args.trans, n, k, alpha, A, ld, B, ld, beta, Cbuf, n,
              triton_cfg=cfg)

    if args.tune:
        # the kernel reads (k, n) operands; a column-major n x k buffer is one
        Ak = A.view(k, n) if args.trans == "N" else A.view(n, k).mT
        Bk = B.view(k, n) if args.trans == "N" else B.view(n, k).mT
        Cn = C.clone().view(n, n)
        ms, best = tune_her2k(Cn, Ak, Bk, alpha=alpha, beta=beta,
                              uplo="U" if args.uplo == "G" else args.uplo,
                              block_k=args.block_k, budget_ms=args.budget_ms)
        label = " ".join(f"{key}={val}" for key, val in best.items())
        print(f"best: {label} time={ms:.3f} ms  approx {flops / (ms / 1e3) / 1e12:.2f} TFLOP/s")
        return

    if args.check:
        C_cuda = C.clone()
        run_her2k(C_cuda)
        C_cpu = C.cpu()
        her2k("C", args.uplo, args.trans, n, k, alpha, A.cpu(), ld, B.cpu(), ld, beta, C_cpu, n)
        max_abs = (C_cuda.cpu() - C_cpu).abs().max().item()
        print(f"check n={n} k={k} uplo={args.uplo} trans={args.trans} max_abs={max_abs:.3e}")

    if args.bench:
        C_work = C.clone()
        Am = A.view(k, n).mT if args.trans == "N" else A.view(n, k).mT
        Bm = B.view(k, n).mT if args.trans == "N" else B.view(n, k).mT

        def run_dense():
            if args.trans == "N":
                return torch.addmm(C_work.view(n, n), Am, Bm.T, beta=beta, alpha=2 * alpha)
            return torch.addmm(C_work.view(n, n), Am.T, Bm, beta=beta, alpha=2 * alpha)

        ms = triton.testing.do_bench(lambda: run_her2k(C_work), warmup=1, rep=5)
        ms_ref = triton.testing.do_bench(run_dense, warmup=1, rep=5)
        print(f"triton her2k: {ms:.3f} ms  approx {flops / (ms / 1e3) / 1e12:.2f} TFLOP/s")
        print(f"dense gemm reference: {ms_ref:.3f} ms")


if __name__ == "__main__":
    main()
