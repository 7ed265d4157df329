import pytest

from lens.db import DbClient

from blog import Base, seed


@pytest.fixture(scope="session")
def db_client():
    client = DbClient()
    Base.metadata.create_all(client.engine)
    with client.session() as session:
        seed(session)
        session.commit()
    yield client
    client.close()


# Every test gets its own session and leaves no changes behind
@pytest.fixture
def session(db_client):
    with db_client.session() as session:
        yield session
        session.rollback()


def compile_sql(plan) -> str:
    return str(plan.statement().compile(compile_kwargs={"literal_binds": True}))


@pytest.fixture
def sql():
    return compile_sql
