"""Provider clients used by actions and remediations."""

from warden.providers.github import GitHubClient, generate_curl_command

__all__ = [
    "GitHubClient",
    "generate_curl_command",
]
