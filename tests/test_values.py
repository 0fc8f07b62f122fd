import jaxlie
import numpy as onp
import pytest

from jaxinit.core import (
    Values,
    default_key_formatter,
    symbol,
    symbol_chr,
    symbol_index,
    symbol_key_formatter,
)


def test_symbol_keys():
    key = symbol("x", 3)
    assert symbol_chr(key) == "x"
    assert symbol_index(key) == 3
    assert symbol_key_formatter(key) == "x3"
    assert symbol_key_formatter(5) == "5"
    assert default_key_formatter(5) == "5"

    # Distinct characters never collide.
    assert symbol("x", 0) != symbol("l", 0)
    assert symbol_key_formatter(symbol("Z", 9999999)) == "Z9999999"


def test_insert_update_at():
    values = Values()
    values.insert(0, jaxlie.SO3.identity())
    assert values.exists(0)
    assert 0 in values
    assert not values.exists(1)
    assert len(values) == 1

    with pytest.raises(KeyError):
        values.insert(0, jaxlie.SO3.identity())
    with pytest.raises(KeyError):
        values.update(1, jaxlie.SO3.identity())
    with pytest.raises(KeyError):
        values.at(1)

    values.update(0, jaxlie.SO3.from_z_radians(1.0))
    onp.testing.assert_allclose(values[0].log(), [0.0, 0.0, 1.0], atol=1e-9)
    assert values.keys() == [0]
    assert list(values) == [0]


def test_equals():
    R = jaxlie.SO3.from_y_radians(0.4)
    values = Values({0: R, 1: jaxlie.SO3.identity()})

    # Quaternions `q` and `-q` describe the same rotation.
    flipped = Values({0: jaxlie.SO3(wxyz=-R.wxyz), 1: jaxlie.SO3.identity()})
    assert values.equals(flipped)

    assert not values.equals(Values({0: R}))
    assert not values.equals(
        Values({0: jaxlie.SO3.from_y_radians(0.4 + 1e-4), 1: jaxlie.SO3.identity()})
    )
    assert values.equals(
        Values({0: jaxlie.SO3.from_y_radians(0.4 + 1e-4), 1: jaxlie.SO3.identity()}),
        tol=1e-3,
    )

    # Same rotation stored as a pose is not equal.
    assert not Values({0: jaxlie.SE3.identity()}).equals(
        Values({0: jaxlie.SO3.identity()})
    )


def test_to_text():
    values = Values({symbol("x", 0): jaxlie.SO3.identity()})
    text = values.to_text(symbol_key_formatter)
    assert text.startswith("Values(\n    x0.SO3: ")
    assert repr(Values()) == "Values(\n\n)"
