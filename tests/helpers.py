from issue_graph.errors import LLMError
from issue_graph.models import IssueRecord


class FakeLLM:
    """Scripted completion endpoint.

    Each call pops the next reply; an Exception instance in the script is
    raised instead of returned.
    """

    def __init__(self, *replies):
        self.replies = list(replies)
        self.prompts = []
        self.temperatures = []

    def complete(self, prompt, temperature=None, model=None):
        self.prompts.append(prompt)
        self.temperatures.append(temperature)
        if not self.replies:
            raise LLMError("no scripted reply left")
        reply = self.replies.pop(0)
        if isinstance(reply, Exception):
            raise reply
        return reply


def make_issue(issue_id=1, repo="acme/widgets", **overrides) -> IssueRecord:
    data = {
        "id": issue_id,
        "repo": repo,
        "title": f"Issue {issue_id}",
        "body": "",
        "url": f"https://github.com/{repo}/issues/{issue_id}",
        "labels": [],
        "assignees": [],
        "state": "open",
        "createdAt": "2024-01-01T00:00:00Z",
        "updatedAt": "2024-01-02T00:00:00Z",
        "comments": 0,
    }
    data.update(overrides)
    return IssueRecord.model_validate(data)
