import pytest
import torch

from la_scalar import conj, is_complex, real, real_type, scalar_type


def test_conj_real_is_identity():
    assert conj(3.0) == 3.0
    x = torch.tensor([1.0, -2.0], dtype=torch.float64)
    assert conj(x) is x


def test_conj_complex():
    assert conj(1 + 2j) == 1 - 2j
    z = torch.tensor([1 + 2j, -3j], dtype=torch.complex128)
    torch.testing.assert_close(conj(z), torch.tensor([1 - 2j, 3j], dtype=torch.complex128))


def test_real_part():
    assert real(2.5) == 2.5
    assert real(2.5 - 1j) == 2.5
    z = torch.tensor([1 + 2j, -3j], dtype=torch.complex64)
    assert real(z).dtype == torch.float32
    torch.testing.assert_close(real(z), torch.tensor([1.0, 0.0]))


def test_is_complex():
    assert is_complex(1j)
    assert not is_complex(1.0)
    assert is_complex(torch.complex64)
    assert not is_complex(torch.zeros(2))
    with pytest.raises(TypeError):
        is_complex("x")


@pytest.mark.parametrize(
    "operands, expected",
    [
        ((torch.float64, 1j), torch.complex128),
        ((torch.float32, 1j), torch.complex64),
        ((torch.float32, torch.float64), torch.float64),
        ((torch.float32, torch.complex64), torch.complex64),
        ((torch.float64, torch.complex64), torch.complex128),
        ((torch.float64, 2.0), torch.float64),
    ],
)
def test_scalar_type(operands, expected):
    assert scalar_type(*operands) == expected


def test_scalar_type_of_tensors():
    a = torch.zeros(3, dtype=torch.float32)
    c = torch.zeros(3, dtype=torch.complex128)
    assert scalar_type(a, c) == torch.complex128
    assert scalar_type(a, 0.5j) == torch.complex64


def test_real_type():
    assert real_type(torch.complex64) == torch.float32
    assert real_type(torch.float64, 2j) == torch.float64
    assert real_type(torch.float32) == torch.float32
