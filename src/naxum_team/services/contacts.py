"""Contact invitation accessors.

Reading the device address book and sending the SMS are the caller's job;
this module only talks to the invitations API and builds the message text.
"""

from __future__ import annotations

from urllib.parse import parse_qs, urlparse

from naxum_team.errors import ValidationError
from naxum_team.http import ApiClient
from naxum_team.models import Contact, Invitation
from naxum_team.services.envelope import unwrap_list, unwrap_record

INVITATION_MESSAGE = "Join my sales team! {link}"
INVITE_CODE_PARAM = "inviteCode"


async def send_invitation(
    client: ApiClient,
    recipient_phone: str,
    recipient_name: str | None = None,
    recipient_email: str | None = None,
) -> Invitation:
    if not recipient_phone or not recipient_phone.strip():
        raise ValidationError("No phone number available")

    payload: dict[str, object] = {"recipientPhone": recipient_phone.strip()}
    if recipient_name:
        payload["recipientName"] = recipient_name
    if recipient_email:
        payload["recipientEmail"] = recipient_email

    body = await client.post("/invitations", json=payload)
    return unwrap_record(body, Invitation.from_dict)


async def get_invitations(client: ApiClient) -> list[Invitation]:
    body = await client.get("/invitations")
    return unwrap_list(body, Invitation.from_dict)


async def invite_contact(client: ApiClient, contact: Contact) -> Invitation:
    """
    Invite an address-book contact using its first phone number and email.

    Raises:
        ValidationError: If the contact has no phone number
    """
    phone = contact.primary_phone
    if not phone:
        raise ValidationError("No phone number available")

    return await send_invitation(client, phone, contact.name, contact.primary_email)


def build_invitation_message(invitation: Invitation) -> str:
    """SMS body to send alongside an invitation."""
    return INVITATION_MESSAGE.format(link=invitation.invite_link)


def parse_invite_code(url: str) -> str | None:
    """
    Extract the invite code from a registration deep link.

    Example:
        teamapp://register?inviteCode=cf1f7f3f-... -> "cf1f7f3f-..."
    """
    values = parse_qs(urlparse(url).query).get(INVITE_CODE_PARAM)
    if not values or not values[0].strip():
        return None
    return values[0].strip()
