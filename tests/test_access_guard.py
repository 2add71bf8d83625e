from __future__ import annotations

import uuid

import pytest
from fastapi import HTTPException
from sqlalchemy.orm import Session

from portal.services.access_service import ProjectAccessGuard
from tests.factories import create_organization, create_project, create_user


def test_platform_admin_can_access_any_project(db_session: Session) -> None:
    organization = create_organization(db_session, "Client Co")
    project = create_project(db_session, organization.id)
    guard = ProjectAccessGuard(db_session)

    assert guard.can_access_project("anyone@exo.dev", project.id) is True
    # The admin check runs before any lookup.
    assert guard.can_access_project("anyone@exo.dev", uuid.uuid4()) is True


def test_member_access_follows_project_organization(db_session: Session) -> None:
    org_a = create_organization(db_session, "Org A")
    org_b = create_organization(db_session, "Org B")
    create_user(db_session, "member@client.com", organization_ids=[org_a.id])
    project = create_project(db_session, org_a.id)
    guard = ProjectAccessGuard(db_session)

    assert guard.can_access_project("member@client.com", project.id) is True

    project.organization_id = org_b.id
    db_session.commit()

    assert guard.can_access_project("member@client.com", project.id) is False


def test_legacy_membership_grants_access(db_session: Session) -> None:
    organization = create_organization(db_session, "Legacy Co")
    create_user(db_session, "legacy@client.com", legacy_organization_id=organization.id)
    project = create_project(db_session, organization.id)

    assert ProjectAccessGuard(db_session).can_access_project("legacy@client.com", project.id) is True


def test_unknown_callers_and_projects_are_denied(db_session: Session) -> None:
    organization = create_organization(db_session, "Client Co")
    create_user(db_session, "member@client.com", organization_ids=[organization.id])
    project = create_project(db_session, organization.id)
    guard = ProjectAccessGuard(db_session)

    assert guard.can_access_project("stranger@client.com", project.id) is False
    assert guard.can_access_project(None, project.id) is False
    assert guard.can_access_project("member@client.com", uuid.uuid4()) is False


def test_organization_scoped_resources(db_session: Session) -> None:
    org_a = create_organization(db_session, "Org A")
    org_b = create_organization(db_session, "Org B")
    create_user(db_session, "member@client.com", organization_ids=[org_a.id])
    guard = ProjectAccessGuard(db_session)

    assert guard.can_access_organization_scoped_resource("member@client.com", org_a.id) is True
    assert guard.can_access_organization_scoped_resource("member@client.com", org_b.id) is False
    assert guard.can_access_organization_scoped_resource("boss@exo.dev", org_b.id) is True


def test_ensure_project_access_distinguishes_missing_from_denied(db_session: Session) -> None:
    organization = create_organization(db_session, "Client Co")
    project = create_project(db_session, organization.id)
    guard = ProjectAccessGuard(db_session)

    with pytest.raises(HTTPException) as missing:
        guard.ensure_project_access("member@client.com", uuid.uuid4())
    assert missing.value.status_code == 404

    with pytest.raises(HTTPException) as denied:
        guard.ensure_project_access("member@client.com", project.id)
    assert denied.value.status_code == 403

    assert guard.ensure_project_access("boss@exo.dev", project.id).id == project.id


def test_ensure_organization_access_rejects_non_members(db_session: Session) -> None:
    org_a = create_organization(db_session, "Org A")
    org_b = create_organization(db_session, "Org B")
    create_user(db_session, "member@client.com", organization_ids=[org_a.id])
    guard = ProjectAccessGuard(db_session)

    guard.ensure_organization_access("member@client.com", org_a.id)
    guard.ensure_organization_access("boss@exo.dev", org_b.id)

    with pytest.raises(HTTPException) as denied:
        guard.ensure_organization_access("member@client.com", org_b.id)
    assert denied.value.status_code == 403
