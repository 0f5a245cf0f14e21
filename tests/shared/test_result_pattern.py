import pytest

from sdmeta_shared import ErrorCode, Result


def test_ok_carries_data_and_meta() -> None:
    res = Result.Ok({"a": 1}, format="png")
    assert res.ok
    assert res.code == "OK"
    assert res.data == {"a": 1}
    assert res.meta == {"format": "png"}


def test_err_stores_enum_value_as_code() -> None:
    res = Result.Err(ErrorCode.PARSE_ERROR, "boom", entry="Comment")
    assert not res.ok
    assert res.code == "PARSE_ERROR"
    assert res.error == "boom"
    assert res.meta["entry"] == "Comment"
    assert res.is_code(ErrorCode.PARSE_ERROR)
    assert res.is_code("PARSE_ERROR")
    assert not res.is_code(ErrorCode.UNSUPPORTED_FORMAT)


def test_is_code_is_false_for_ok() -> None:
    assert not Result.Ok(1).is_code("OK")


def test_map_and_unwrap() -> None:
    assert Result.Ok(2).map(lambda v: v * 3).unwrap() == 6
    err = Result.Err(ErrorCode.INVALID_INPUT, "bad")
    assert err.map(lambda v: v * 3) is err
    assert err.unwrap_or(7) == 7
    with pytest.raises(ValueError, match="INVALID_INPUT"):
        err.unwrap()
