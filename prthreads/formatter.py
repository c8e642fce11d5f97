from typing import Optional

from .models import PullRequest, Review, ThreadAction

# Discord limits
THREAD_NAME_LIMIT = 100
MESSAGE_LIMIT = 2000
TITLE_PREFIX_LENGTH = 90

NO_DESCRIPTION = "No description provided"

REVIEW_STATE_TEXT = {
    "approved": "✅ Approved",
    "changes_requested": "🔄 Changes requested",
    "commented": "💬 Commented",
}


def truncate(text: str, room: int) -> str:
    """Cut ``text`` at a word boundary so it fits in ``room`` characters, ellipsis included."""
    if len(text) <= room:
        return text
    return text[: max(room - 3, 0)].rsplit(" ", 1)[0] + "..."


def thread_name(pr: PullRequest) -> str:
    name = f"PR #{pr.number}: {pr.title[:TITLE_PREFIX_LENGTH]}"
    return name[:THREAD_NAME_LIMIT]


def intro_message(pr: PullRequest) -> str:
    head = f"**New PR opened by {pr.user.login}**\n\n**Title:** {pr.title}\n**Description:** "
    tail = (
        f"\n**Link:** {pr.html_url}\n\n"
        "This thread will be updated as the PR status changes."
    )
    description = truncate(pr.body or NO_DESCRIPTION, MESSAGE_LIMIT - len(head) - len(tail))
    return head + description + tail


def quote(text: str) -> str:
    return "\n".join(f"> {line}" for line in text.splitlines())


def review_message(review: Review) -> str:
    message = f"Review submitted by {review.user.login}: "
    message += REVIEW_STATE_TEXT.get(review.state, review.state)
    if review.body:
        message += "\n\n"
        message += truncate(quote(review.body), MESSAGE_LIMIT - len(message))
    return message


def format_message(action: ThreadAction, pr: PullRequest) -> Optional[str]:
    """
    Render the text posted to a PR thread for ``action``.

    Returns None when the snapshot lacks what the action needs (a review event
    without its review object).
    """
    if action is ThreadAction.OPENED:
        return intro_message(pr)
    if action is ThreadAction.CLOSED:
        if pr.merged:
            actor = pr.merged_by.login if pr.merged_by else "unknown"
            return f"PR #{pr.number} was merged by {actor} 🎉"
        actor = pr.closed_by.login if pr.closed_by else "unknown"
        return f"PR #{pr.number} was closed without merging by {actor} ❌"
    if action is ThreadAction.REOPENED:
        return f"PR #{pr.number} was reopened by {pr.user.login} 🔄"
    if action is ThreadAction.SYNCHRONIZE:
        return f"PR #{pr.number} was updated with new commits 📝"
    if action is ThreadAction.REVIEW_REQUESTED:
        reviewer = pr.requested_reviewer.login if pr.requested_reviewer else "reviewers"
        return f"Review requested for PR #{pr.number} from {reviewer} 👀"
    if action is ThreadAction.REVIEW_SUBMITTED:
        if pr.review is None:
            return None
        return review_message(pr.review)
    return None
