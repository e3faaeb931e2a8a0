"""Identity constants shared by fixtures and tests."""

USER_ID = "user-1"
TEAM_ID = "team-1"
OTHER_USER_ID = "user-2"
OTHER_TEAM_ID = "team-2"

AUTH_HEADERS = {"X-User-Id": USER_ID, "X-Team-Id": TEAM_ID}
