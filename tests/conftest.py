"""Shared fixtures for the workflow core test suite."""
from typing import Callable, Dict, List, Optional

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.pool import StaticPool
from sqlmodel import Session, create_engine

from app.domain.approvals.service import ApprovalService
from app.domain.definitions import DefinitionAccessor, Step, WorkflowDefinition
from app.domain.errors import UnavailableError
from app.domain.instances.service import WorkflowInstanceService
from app.domain.types import DefinitionStatus, StepKind
from app.infra.db.connection import init_db


class FakeDefinitionAccessor(DefinitionAccessor):
    """In-memory definition source with switchable outages."""

    def __init__(self):
        self.definitions: Dict[str, WorkflowDefinition] = {}
        self.unavailable = False
        self.calls = 0
        self.before_fetch: Optional[Callable[[], None]] = None

    def put(
        self,
        definition_id: str,
        step_ids: List[str],
        status: DefinitionStatus = DefinitionStatus.ACTIVE,
        version: Optional[str] = None,
    ) -> WorkflowDefinition:
        definition = WorkflowDefinition(
            id=definition_id,
            name=definition_id.replace("-", " ").title(),
            version=version,
            status=status,
            steps=[
                Step(id=step_id, name=step_id.title(), kind=StepKind.TASK)
                for step_id in step_ids
            ],
        )
        self.definitions[definition_id] = definition
        return definition

    def remove(self, definition_id: str) -> None:
        self.definitions.pop(definition_id, None)

    def get_definition(self, definition_id: str) -> Optional[WorkflowDefinition]:
        self.calls += 1
        if self.before_fetch is not None:
            hook, self.before_fetch = self.before_fetch, None
            hook()
        if self.unavailable:
            raise UnavailableError(f"Workflow definition {definition_id} is unavailable")
        return self.definitions.get(definition_id)


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    init_db(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session(engine):
    with Session(engine) as session:
        yield session


@pytest.fixture
def definitions():
    accessor = FakeDefinitionAccessor()
    accessor.put("review", ["start", "approve", "end"])
    return accessor


@pytest.fixture
def instance_service(session, definitions):
    return WorkflowInstanceService(session, definitions)


@pytest.fixture
def approval_service(session):
    return ApprovalService(session)


@pytest.fixture
def client(session, definitions):
    from app.api.dependencies import get_definition_accessor
    from app.infra.db.connection import get_session
    from app.main import app

    def override_session():
        yield session

    app.dependency_overrides[get_session] = override_session
    app.dependency_overrides[get_definition_accessor] = lambda: definitions

    yield TestClient(app)

    app.dependency_overrides.clear()
