"""
Session authentication for the JSON API.
"""
from rest_framework.authentication import SessionAuthentication


class JSONSessionAuthentication(SessionAuthentication):
    """
    Django session login without DRF's CSRF token check.

    API clients log in through /auth/login and then send JSON with the
    session cookie only. Cross-site form posts are blocked by the
    SameSite=Lax session cookie.
    """

    def enforce_csrf(self, request):
        return
