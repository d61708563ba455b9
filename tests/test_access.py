from companion.services.access import (
    Authorized,
    Denied,
    authorize_patient_access,
    require,
    resolve_conversation_identity,
)
from companion.core.exceptions import AccessDeniedError, NotFoundError, ValidationError

import pytest


def test_patient_caller_resolves_to_self_and_ignores_patient_id(session, make_patient):
    patient = make_patient()
    other = make_patient(auth_user_id="user_patient_2", agent_id="agent-2")

    result = resolve_conversation_identity(session, "user_patient_1", other.id)

    assert isinstance(result, Authorized)
    assert result.patient.id == patient.id
    assert result.caregiver is None


def test_caregiver_caller_resolves_to_named_patient(session, make_patient, make_caregiver):
    patient = make_patient()
    caregiver = make_caregiver()

    result = resolve_conversation_identity(session, "user_caregiver_1", patient.id)

    assert isinstance(result, Authorized)
    assert result.patient.id == patient.id
    assert result.caregiver.id == caregiver.id


@pytest.mark.parametrize(
    "user_id, patient_id, status_code",
    [
        ("user_nobody", None, 404),
        ("user_caregiver_1", None, 400),
        ("user_caregiver_1", "missing", 404),
    ],
)
def test_conversation_identity_denials(session, make_caregiver, user_id, patient_id, status_code):
    make_caregiver()

    result = resolve_conversation_identity(session, user_id, patient_id)

    assert isinstance(result, Denied)
    assert result.status_code == status_code


def test_patient_may_read_own_records(session, make_patient):
    patient = make_patient()

    assert isinstance(authorize_patient_access(session, "user_patient_1", patient.id), Authorized)


def test_linked_caregiver_may_read_patient_records(session, make_patient, make_caregiver):
    patient = make_patient()
    make_caregiver(patients=[patient])

    result = authorize_patient_access(session, "user_caregiver_1", patient.id)

    assert isinstance(result, Authorized)
    assert result.caregiver is not None


def test_unlinked_caregiver_is_denied(session, make_patient, make_caregiver):
    patient = make_patient()
    make_caregiver()

    result = authorize_patient_access(session, "user_caregiver_1", patient.id)

    assert result == Denied("Caregiver does not have access to this patient", 403)


def test_stranger_is_denied_and_missing_patient_is_not_found(session, make_patient):
    patient = make_patient()

    assert authorize_patient_access(session, "user_nobody", patient.id).status_code == 403
    assert authorize_patient_access(session, "user_nobody", "missing").status_code == 404


def test_demo_patient_is_readable_by_anyone(session, make_patient):
    demo = make_patient(auth_user_id="demo_patient_global")

    assert isinstance(authorize_patient_access(session, "user_nobody", demo.id), Authorized)


def test_require_maps_denials_to_errors():
    with pytest.raises(ValidationError):
        require(Denied("patientId required", 400))
    with pytest.raises(NotFoundError):
        require(Denied("Patient not found", 404))
    with pytest.raises(AccessDeniedError):
        require(Denied("nope", 403))
