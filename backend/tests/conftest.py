import pytest
from fastapi.testclient import TestClient

from formbuilder.deps import get_builder_store
from formbuilder.main import app
from formbuilder.schemas import DerivedConfig, FieldType, FormField, ValidationRules
from formbuilder.storage import MemoryBlobStore, SavedFormsRepository
from formbuilder.store import FormBuilderStore


@pytest.fixture
def blob_store():
    return MemoryBlobStore()


@pytest.fixture
def repository(blob_store):
    return SavedFormsRepository(blob_store)


@pytest.fixture
def store(repository):
    return FormBuilderStore(repository)


@pytest.fixture
def client(store):
    app.dependency_overrides[get_builder_store] = lambda: store
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture
def profile_fields():
    """A small form: names, a birth date, two scores and derived fields over them."""
    return [
        FormField(id="first", type=FieldType.text, label="First name",
                  validation=ValidationRules(required=True, minLength=2)),
        FormField(id="last", type=FieldType.text, label="Last name"),
        FormField(id="dob", type=FieldType.date, label="Date of birth"),
        FormField(id="a", type=FieldType.number, label="Score A"),
        FormField(id="b", type=FieldType.number, label="Score B"),
        FormField(id="full", type=FieldType.text, label="Full name",
                  derived=DerivedConfig(parentFields=["first", "last"], formula="concat")),
        FormField(id="age", type=FieldType.number, label="Age",
                  derived=DerivedConfig(parentFields=["dob"], formula="age")),
        FormField(id="total", type=FieldType.number, label="Total",
                  derived=DerivedConfig(parentFields=["a", "b"], formula="a + b * 2")),
    ]
