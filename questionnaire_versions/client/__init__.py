"""Editor-side access to the version API: HTTP client and state mirror."""

from questionnaire_versions.client.api_client import VersionApiClient
from questionnaire_versions.client.mirror import ClientMirror

__all__ = ["VersionApiClient", "ClientMirror"]
