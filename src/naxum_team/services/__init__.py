"""
Remote resource accessors.

One module per API domain (auth, tasks, team, contacts). Every function is
stateless: it takes the shared ``ApiClient``, issues one request, unwraps the
``{"data": ...}`` envelope and returns domain records. Nothing here retries;
retry decisions belong to the session manager and the query cache.
"""

from naxum_team.services import auth, contacts, tasks, team

__all__ = ["auth", "contacts", "tasks", "team"]
