import pytest

HEADER = "Name;Stream;Member;Start;End;Status;Priority;Group;Hours;Notes;Stakeholder;Type"


def build_ledger(*rows: str) -> str:
    return "\n".join((HEADER,) + rows) + "\n"


@pytest.fixture
def ledger():
    return build_ledger


@pytest.fixture
def small_ledger():
    return build_ledger(
        "Alpha;Core;Ann;01/01/25;31/01/25;Si;Alta;;80;;;Build",
        "Beta;Ops;Ann;01/02/25;28/02/25;No;Baja;;40;;;Run",
        "Gamma;Core;Bob;15/01/25;15/03/25;Si;Media;;120;;;Build",
        "Delta;Ops;Bob;31/02/25;28/03/25;Si;Alta;;10;;;Run",
    )
