"""Pytest configuration and fixtures."""

import hashlib
import hmac
import os

# Settings are read once at import time
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("JWT_SECRET", "test-jwt-secret-that-is-long-enough-for-hs256")
os.environ.setdefault("RESEND_API_KEY", "re_test_key")
os.environ.setdefault("GEMINI_API_KEY", "test-gemini-key")

import httpx
import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

import code_police.models  # noqa: F401
from code_police.analyzers.llm_analyzer import Finding
from code_police.analyzers.severity import Category, Severity
from code_police.database import Base
from code_police.models.project import Project
from code_police.models.user import User
from code_police.services.auth_service import AuthService
from code_police.services.github_service import Commit, CommitAuthor, CommitFile
from code_police.services.notification_service import NotificationService
from code_police.services.pipeline_service import AnalysisPipeline

COMMIT_SHA = "a1b2c3d4e5f6a7b8c9d0a1b2c3d4e5f6a7b8c9d0"
WEBHOOK_SECRET = "whsec-test-secret"

SAMPLE_PYTHON_CODE = '''import os


def run(cmd):
    """Run a shell command."""
    return os.system(cmd)


def greet(name):
    return "Hello, " + name
'''


def sign(body: bytes, secret: str = WEBHOOK_SECRET) -> str:
    """X-Hub-Signature-256 value for a body."""
    return "sha256=" + hmac.new(secret.encode(), body, hashlib.sha256).hexdigest()


def make_finding(
    file_path: str = "src/app.py",
    severity: Severity = Severity.MEDIUM,
    line: int = 1,
    message: str = "Something looks off",
    category: Category = Category.BUG,
) -> Finding:
    return Finding(
        file_path=file_path,
        line=line,
        severity=severity,
        category=category,
        message=message,
        explanation="Explanation",
    )


class FakeGitHub:
    """In-memory stand-in for GitHubService."""

    def __init__(self):
        self.commit = Commit(
            sha=COMMIT_SHA,
            message="Fix login flow",
            author=CommitAuthor(name="Dev", email="dev@acme.io"),
            files=[CommitFile(filename="src/app.py", status="modified")],
        )
        self.contents = {"src/app.py": SAMPLE_PYTHON_CODE}
        self.dependents = []
        self.commit_error: Exception | None = None
        self.dependents_error: Exception | None = None
        self.comment_error: Exception | None = None
        self.delete_error: Exception | None = None
        self.fetched_refs: list[str] = []
        self.fetched_paths: list[str] = []
        self.comments: list[tuple[int, str]] = []
        self.created_webhooks: list[dict] = []
        self.deleted_webhooks: list[int] = []

    async def fetch_commit(self, access_token, owner, repo, ref):
        self.fetched_refs.append(ref)
        if self.commit_error:
            raise self.commit_error
        return self.commit

    async def get_file_content(self, access_token, owner, repo, path, ref=None):
        self.fetched_paths.append(path)
        if path not in self.contents:
            raise RuntimeError(f"Not Found: {path}")
        return self.contents[path]

    async def find_dependent_files(self, access_token, owner, repo, path, limit=None):
        if self.dependents_error:
            raise self.dependents_error
        return self.dependents

    async def post_issue_comment(self, access_token, owner, repo, issue_number, body):
        if self.comment_error:
            raise self.comment_error
        self.comments.append((issue_number, body))
        return {"id": len(self.comments)}

    async def create_webhook(self, access_token, owner, repo, webhook_url, secret):
        self.created_webhooks.append(
            {"owner": owner, "repo": repo, "url": webhook_url, "secret": secret}
        )
        return 9001

    async def delete_webhook(self, access_token, owner, repo, webhook_id):
        if self.delete_error:
            raise self.delete_error
        self.deleted_webhooks.append(webhook_id)


class FakeAnalyzer:
    """Stand-in for LLMCodeAnalyzer returning canned findings per file."""

    def __init__(self):
        self.findings: dict[str, list[Finding]] = {}
        self.errors: dict[str, Exception] = {}
        self.summary = "Two issues worth a look."
        self.summary_error: Exception | None = None
        self.calls: list[dict] = []

    async def analyze_file(
        self,
        code,
        file_path,
        language,
        commit_message,
        custom_rules=None,
        dependent_context=None,
    ):
        self.calls.append(
            {
                "file_path": file_path,
                "language": language,
                "commit_message": commit_message,
                "custom_rules": custom_rules,
                "dependent_context": dependent_context,
            }
        )
        if file_path in self.errors:
            raise self.errors[file_path]
        return list(self.findings.get(file_path, []))

    async def summarize(self, repo_name, commit_sha, branch, findings):
        if self.summary_error:
            raise self.summary_error
        return self.summary


class FakeEmail:
    """Stand-in for EmailService recording every message."""

    def __init__(self):
        self.sent: list[dict] = []
        self.failing: set[str] = set()

    async def send(self, to, subject, html):
        if to in self.failing:
            raise httpx.HTTPStatusError(
                "422 Unprocessable Entity",
                request=httpx.Request("POST", "https://api.resend.com/emails"),
                response=httpx.Response(422),
            )
        self.sent.append({"to": to, "subject": subject, "html": html})
        return f"msg-{len(self.sent)}"


@pytest_asyncio.fixture
async def db_session():
    """Fresh in-memory database per test."""
    engine = create_async_engine("sqlite+aiosqlite://", poolclass=StaticPool)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    session_factory = async_sessionmaker(engine, expire_on_commit=False)
    async with session_factory() as session:
        yield session

    await engine.dispose()


@pytest_asyncio.fixture
async def user(db_session):
    """Project owner with a GitHub token."""
    user = User(
        github_id=1001,
        github_login="octodev",
        email="dev@acme.io",
        github_access_token="gho_test_token",
    )
    db_session.add(user)
    await db_session.commit()
    return user


@pytest.fixture
def make_project(db_session, user):
    """Create a project for the default user."""

    async def _make_project(**overrides) -> Project:
        fields = {
            "user_id": user.id,
            "name": "widgets",
            "github_repo_id": 555,
            "github_owner": "acme",
            "github_repo_name": "widgets",
            "default_branch": "main",
            "webhook_id": 77,
            "webhook_secret": WEBHOOK_SECRET,
            "status": "active",
            "custom_rules": [],
            "notification_prefs": {},
        }
        fields.update(overrides)
        project = Project(**fields)
        db_session.add(project)
        await db_session.commit()
        return project

    return _make_project


@pytest.fixture
def sign_payload():
    return sign


@pytest.fixture
def finding_factory():
    return make_finding


@pytest.fixture
def fake_github():
    return FakeGitHub()


@pytest.fixture
def fake_analyzer():
    return FakeAnalyzer()


@pytest.fixture
def fake_email():
    return FakeEmail()


@pytest.fixture
def pipeline(db_session, fake_github, fake_analyzer, fake_email):
    """Pipeline wired to the fakes."""
    notifications = NotificationService(db_session, fake_github, fake_email)
    return AnalysisPipeline(db_session, fake_github, fake_analyzer, notifications)


@pytest_asyncio.fixture
async def client(db_session, fake_github, fake_analyzer, fake_email):
    """API client sharing the test database and fakes."""
    from code_police.api.deps import get_analyzer, get_email_service, get_github_service
    from code_police.database import get_db
    from code_police.main import app

    async def _get_db():
        yield db_session

    app.dependency_overrides[get_db] = _get_db
    app.dependency_overrides[get_github_service] = lambda: fake_github
    app.dependency_overrides[get_analyzer] = lambda: fake_analyzer
    app.dependency_overrides[get_email_service] = lambda: fake_email

    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as client:
        yield client

    app.dependency_overrides.clear()


@pytest.fixture
def auth_headers(user):
    token = AuthService().create_jwt(str(user.id))
    return {"Authorization": f"Bearer {token}"}
