from emitrpc.errors import (
    ERROR_MESSAGES,
    INTERNAL_ERROR,
    METHOD_NOT_FOUND,
    PARSE_ERROR,
    SERVER_ERROR,
    ApplicationError,
    InvalidRequestError,
    error_object,
)


def test_application_error_defaults_to_server_error():
    err = ApplicationError()
    assert err.code == SERVER_ERROR == -32000
    assert err.message == ""
    assert err.to_dict() == {"code": -32000, "message": ""}


def test_reserved_code_uses_canonical_message():
    assert ApplicationError(PARSE_ERROR).message == "Parse error"
    assert ApplicationError(METHOD_NOT_FOUND).message == "Method not found"
    assert ApplicationError(INTERNAL_ERROR).message == "Internal error"
    assert InvalidRequestError().to_dict() == {"code": -32600, "message": "Invalid Request"}


def test_explicit_message_and_data_are_kept():
    err = ApplicationError(-32001, "boom", data={"retry": False})
    assert err.to_dict() == {"code": -32001, "message": "boom", "data": {"retry": False}}
    assert str(err) == "[-32001] boom"


def test_error_object_for_unknown_code_has_empty_message():
    assert error_object(-32099) == {"code": -32099, "message": ""}
    assert set(ERROR_MESSAGES) == {-32700, -32600, -32601, -32603}
