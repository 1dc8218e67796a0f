"""
Tests for the client-side registration wizard and API client
"""
import json

import httpx
import pytest

from teamreg.client.api import ApiResponse, RegistrationApiClient
from teamreg.client.wizard import (
    MAX_MEMBERS,
    AppView,
    Direction,
    MemberRow,
    RegistrationForm,
    RegistrationWizard,
    WizardStep,
    check_file,
    transition,
)


PNG = b"\x89PNG\r\n\x1a\n fake"


def filled_wizard() -> RegistrationWizard:
    wizard = RegistrationWizard()
    wizard.form.recaptcha_token = "token"
    wizard.form.team_name = "Rocket"
    wizard.form.team_leader_name = "Ada"
    wizard.form.team_leader_email = "ada@example.com"
    wizard.form.team_members = [MemberRow(name="Bob", email="bob@example.com")]
    return wizard


class StubApi:
    def __init__(self, response):
        self.response = response
        self.forms = []

    async def register_team(self, form):
        self.forms.append(form)
        return self.response


def test_transition_is_linear():
    assert transition(WizardStep.VERIFICATION, True, Direction.NEXT) == WizardStep.TEAM_INFO
    assert transition(WizardStep.MEMBERS, False, Direction.NEXT) == WizardStep.MEMBERS
    assert transition(WizardStep.UPLOAD, True, Direction.NEXT) == WizardStep.UPLOAD
    assert transition(WizardStep.TEAM_INFO, False, Direction.PREVIOUS) == WizardStep.VERIFICATION
    assert transition(WizardStep.VERIFICATION, True, Direction.PREVIOUS) == WizardStep.VERIFICATION


def test_verification_step_requires_token():
    wizard = RegistrationWizard()
    assert wizard.next() == WizardStep.VERIFICATION
    assert wizard.error == "Please complete the reCAPTCHA verification"

    wizard.form.recaptcha_token = "token"
    assert wizard.next() == WizardStep.TEAM_INFO
    assert wizard.error is None


def test_team_info_requires_valid_email():
    wizard = RegistrationWizard(RegistrationForm(recaptcha_token="t", team_name="Rocket", team_leader_name="Ada",
                                                 team_leader_email="ada-at-example"))
    wizard.step = WizardStep.TEAM_INFO
    assert wizard.next() == WizardStep.TEAM_INFO
    assert wizard.error == "Please enter a valid email address"


def test_members_step_blocked_until_one_valid_member():
    """Zero complete members blocks; adding one with a valid email unblocks"""
    wizard = filled_wizard()
    wizard.form.team_members = [MemberRow()]
    wizard.step = WizardStep.MEMBERS

    assert wizard.next() == WizardStep.MEMBERS
    assert wizard.error == "Please add at least one team member"

    wizard.form.team_members[0] = MemberRow(name="Bob", email="bob@example.com")
    assert wizard.next() == WizardStep.UPLOAD


def test_members_step_checks_each_email():
    wizard = filled_wizard()
    wizard.form.team_members.append(MemberRow(name="Cy", email="cy-at-example"))
    wizard.step = WizardStep.MEMBERS
    assert wizard.next() == WizardStep.MEMBERS
    assert wizard.error == "Invalid email for Cy"


def test_previous_is_unguarded():
    wizard = RegistrationWizard()
    wizard.step = WizardStep.UPLOAD
    assert wizard.previous() == WizardStep.MEMBERS
    assert wizard.previous() == WizardStep.TEAM_INFO


def test_member_rows_capped():
    form = RegistrationForm()
    while form.add_member():
        pass
    assert len(form.team_members) == MAX_MEMBERS
    assert form.remove_member(0)
    assert len(form.team_members) == MAX_MEMBERS - 1


def test_last_member_row_cannot_be_removed():
    form = RegistrationForm()
    assert form.remove_member(0) is False
    assert len(form.team_members) == 1


def test_forms_do_not_share_member_rows():
    first, second = RegistrationForm(), RegistrationForm()
    first.add_member()
    assert len(second.team_members) == 1


def test_attach_file_rejects_bad_types_and_sizes():
    wizard = RegistrationWizard()
    assert wizard.attach_file("notes.txt", "text/plain", b"hi") is False
    assert wizard.attach_file("big.pdf", "application/pdf", b"0" * (10 * 1024 * 1024 + 1)) is False
    assert wizard.form.id_card is None
    assert wizard.attach_file("card.png", "image/png", PNG) is True


async def test_submit_requires_file():
    wizard = filled_wizard()
    wizard.step = WizardStep.UPLOAD
    api = StubApi(ApiResponse(success=True, data={"teamId": "TEAM-0000-0001"}))

    assert await wizard.submit(api) is False
    assert wizard.error == "Please upload an ID card for verification"
    assert api.forms == []


async def test_submit_success_completes():
    wizard = filled_wizard()
    wizard.step = WizardStep.UPLOAD
    wizard.attach_file("card.png", "image/png", PNG)

    assert await wizard.submit(StubApi(ApiResponse(success=True, data={"teamId": "TEAM-0000-0001"})))
    assert wizard.view == AppView.COMPLETE
    assert wizard.result["teamId"] == "TEAM-0000-0001"


async def test_submit_failure_stays_on_upload():
    wizard = filled_wizard()
    wizard.step = WizardStep.UPLOAD
    wizard.attach_file("card.png", "image/png", PNG)

    assert await wizard.submit(StubApi(ApiResponse(success=False, error="reCAPTCHA verification failed."))) is False
    assert wizard.step == WizardStep.UPLOAD
    assert wizard.view == AppView.REGISTERING
    assert wizard.error == "reCAPTCHA verification failed."


async def test_wizard_end_to_end(app, services):
    """Walk every step and submit against the application"""
    app.state.services = services
    transport = httpx.ASGITransport(app=app)
    api = RegistrationApiClient("http://testserver/api", client=httpx.AsyncClient(transport=transport))

    wizard = RegistrationWizard()
    wizard.form.recaptcha_token = "token"
    wizard.next()
    wizard.form.team_name = "Rocket"
    wizard.form.team_leader_name = "Ada"
    wizard.form.team_leader_email = "ada@example.com"
    wizard.next()
    wizard.form.team_members[0] = MemberRow(name="Bob", email="bob@example.com", role="dev")
    wizard.form.add_member()  # left blank, filtered out on submit
    wizard.next()
    assert wizard.step == WizardStep.UPLOAD
    wizard.attach_file("card.png", "image/png", PNG)

    assert await wizard.submit(api) is True
    team_id = wizard.result["teamId"]

    fetched = await api.get_team(team_id)
    assert fetched.success
    assert fetched.data["teamMembers"] == [{"name": "Bob", "email": "bob@example.com", "role": "dev"}]

    missing = await api.get_team("TEAM-0000-0000")
    assert missing.success is False
    assert missing.error == "Team not found"
    await api.close()


async def test_api_client_sends_filtered_members():
    seen = {}

    def handler(request):
        seen["body"] = request.content
        return httpx.Response(201, json={"success": True, "data": {"teamId": "TEAM-0000-0001"}})

    api = RegistrationApiClient("http://server/api", client=httpx.AsyncClient(transport=httpx.MockTransport(handler)))
    wizard = filled_wizard()
    wizard.attach_file("card.png", "image/png", PNG)
    form = wizard.form
    form.add_member()
    response = await api.register_team(form)

    assert response.success
    assert json.dumps([{"name": "Bob", "email": "bob@example.com", "role": ""}]).encode() in seen["body"]


async def test_api_client_network_error():
    def handler(request):
        raise httpx.ConnectError("offline")

    api = RegistrationApiClient("http://server/api", client=httpx.AsyncClient(transport=httpx.MockTransport(handler)))
    response = await api.chat("hello")
    assert response.success is False
    assert "Network error" in response.error


def test_check_file_uses_type_and_size():
    assert check_file("image/webp", 1024) is None
    assert check_file("text/html", 10) == "Please upload an image (JPEG, PNG, WebP) or PDF file"
    assert check_file("application/pdf", 10 * 1024 * 1024 + 1) == "File size must be less than 10MB"
