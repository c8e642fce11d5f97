"""
GitHub App connection check for the PRThreads cog.

PyGithub is synchronous; callers run check_app_connection in a worker thread.
"""
import logging
from typing import Optional

from github import Auth, GithubIntegration

log = logging.getLogger("red.prthreads.github_app")


def load_private_key(path: str) -> str:
    with open(path, "r", encoding="utf-8") as fh:
        return fh.read()


def check_app_connection(
    app_id: str, private_key_path: str, installation_id: Optional[str] = None
) -> str:
    """
    Authenticate as the GitHub App and return its name.

    Args:
        app_id: The GitHub App id
        private_key_path: Path to the App's PEM private key
        installation_id: If given, also verify an installation token can be issued

    Raises:
        OSError: the private key cannot be read
        github.GithubException: GitHub rejected the credentials
    """
    private_key = load_private_key(private_key_path)
    integration = GithubIntegration(auth=Auth.AppAuth(int(app_id), private_key))
    app = integration.get_app()
    log.debug("Authenticated as GitHub App %s", app.name)
    if installation_id:
        integration.get_access_token(int(installation_id))
        log.debug("Issued installation token for installation %s", installation_id)
    return app.name


def manual_test_hint(repo: Optional[str]) -> Optional[str]:
    if not repo or "/" not in repo:
        return None
    return (
        "To test webhook events manually:\n"
        f"1. Go to your repository: https://github.com/{repo}\n"
        "2. Create a new pull request\n"
        "3. Check your Discord channel for a new thread"
    )
