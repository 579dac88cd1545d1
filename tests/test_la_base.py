import pytest
import torch

from conftest import randn
from la_base import (Access, AccessDenied, InvalidArgument, Layout, Op, Uplo,
                     access_denied, as_enum, check_writable, matrix_view,
                     required_length, trmm_right_, write_policy)


def test_as_enum_accepts_members_and_codes():
    assert as_enum(Uplo, Uplo.Lower, "uplo", 2) is Uplo.Lower
    assert as_enum(Uplo, "l", "uplo", 2) is Uplo.Lower
    assert as_enum(Op, "C", "trans", 3) is Op.ConjTrans


def test_as_enum_rejects_unknown():
    with pytest.raises(InvalidArgument) as e:
        as_enum(Uplo, "X", "uplo", 2)
    assert e.value.info == 2
    with pytest.raises(InvalidArgument):
        as_enum(Layout, 0, "layout", 1)


def test_write_policy():
    assert write_policy(torch.zeros(3, 3)) is Access.Dense
    assert write_policy(torch.zeros(3, 3).T) is Access.Dense
    assert write_policy(torch.zeros(1, 3).expand(4, 3)) is Access.ReadOnly
    assert write_policy(torch.zeros(3, requires_grad=True)) is Access.ReadOnly
    with torch.inference_mode():
        t = torch.zeros(3)
    assert write_policy(t) is Access.ReadOnly


def test_access_denied():
    assert access_denied(Access.Dense, Access.ReadOnly)
    assert not access_denied(Access.Dense, Access.Dense)
    with pytest.raises(AccessDenied):
        check_writable(torch.zeros(1).expand(5), "x")


def test_matrix_view_offsets():
    buf = torch.arange(20, dtype=torch.float64)
    cm = matrix_view(buf, 3, 4, 5, Layout.ColMajor)
    rm = matrix_view(buf, 3, 4, 6, Layout.RowMajor)
    for i in range(3):
        for j in range(4):
            assert cm[i, j] == buf[i + j * 5]
            assert rm[i, j] == buf[i * 6 + j]


def test_matrix_view_writes_through():
    buf = torch.zeros(6)
    matrix_view(buf, 2, 3, 2)[1, 2] = 7.0
    assert buf[5] == 7.0


def test_matrix_view_strided_buffer():
    base = torch.arange(24, dtype=torch.float64)
    buf = base[1::2]
    v = matrix_view(buf, 2, 2, 3)
    assert v[1, 1] == buf[4]


def test_required_length():
    assert required_length(3, 4, 5) == 18
    assert required_length(0, 4, 5) == 0
    assert required_length(3, 0, 5) == 0


@pytest.mark.parametrize("uplo", [Uplo.Upper, Uplo.Lower])
@pytest.mark.parametrize("op", [Op.NoTrans, Op.Trans, Op.ConjTrans])
@pytest.mark.parametrize("unit", [False, True])
def test_trmm_right_matches_dense(gen, dtype, uplo, op, unit):
    k = 5
    tri = randn(gen, k, k, dtype=dtype)
    W = randn(gen, 4, k, dtype=dtype)

    dense = torch.triu(tri) if uplo is Uplo.Upper else torch.tril(tri)
    if unit:
        dense = dense - torch.diag(torch.diagonal(dense)) + torch.eye(k, dtype=dtype)
    if op is Op.Trans:
        dense = dense.mT
    elif op is Op.ConjTrans:
        dense = dense.mH
    expected = W @ dense

    # The other triangle (and a unit diagonal) must never be read.
    poisoned = tri.clone()
    mask = torch.ones(k, k, dtype=torch.bool)
    mask = torch.tril(mask, -1) if uplo is Uplo.Upper else torch.triu(mask, 1)
    poisoned[mask] = float("nan")
    if unit:
        poisoned.diagonal().fill_(float("nan"))

    trmm_right_(W, poisoned, uplo, op, unit=unit)
    torch.testing.assert_close(W, expected)
