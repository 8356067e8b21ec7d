"""Route guard deciding where a session belongs."""

from naxum_team.session import Session

LOGIN_ROUTE = "/login"
HOME_ROUTE = "/(tabs)"


def resolve_redirect(session: Session, in_auth_group: bool) -> str | None:
    """
    Return the route to redirect to, or None to stay put.

    Nothing moves while the session is loading or authenticating. Once
    settled, anonymous sessions go to the login surface and authenticated
    ones leave it.
    """
    if not session.is_settled:
        return None

    if not session.is_authenticated and not in_auth_group:
        return LOGIN_ROUTE
    if session.is_authenticated and in_auth_group:
        return HOME_ROUTE
    return None
