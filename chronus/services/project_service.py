"""Project service - ChronusDev projects and per-project members/rates."""

from uuid import UUID

from sqlalchemy.orm import Session, joinedload

from chronus.db.enums import ActivityType, Role
from chronus.db.models import Client, Project, ProjectMember
from chronus.schemas.project import ProjectCreate, ProjectMemberUpsert, ProjectUpdate
from chronus.services import activity_service, org_service


def member_project_ids(db: Session, user_id: UUID):
    """Subquery of project ids the user belongs to."""
    return db.query(ProjectMember.project_id).filter(ProjectMember.user_id == user_id)


def list_projects(db: Session, org_id: UUID, member_user_id: UUID | None = None) -> list[Project]:
    query = db.query(Project).filter(Project.organization_id == org_id)
    if member_user_id:
        query = query.filter(Project.id.in_(member_project_ids(db, member_user_id)))
    return query.order_by(Project.created_at.desc()).all()


def get_project(db: Session, project_id: UUID, org_id: UUID) -> Project | None:
    return db.query(Project).filter(
        Project.id == project_id,
        Project.organization_id == org_id,
    ).first()


def get_membership(db: Session, project_id: UUID, user_id: UUID) -> ProjectMember | None:
    return db.query(ProjectMember).filter(
        ProjectMember.project_id == project_id,
        ProjectMember.user_id == user_id,
    ).first()


def create_project(db: Session, org_id: UUID, user_id: UUID, data: ProjectCreate) -> Project:
    """Create a project; the creator joins it as MANAGER."""
    if data.client_id:
        client = db.query(Client).filter(
            Client.id == data.client_id,
            Client.organization_id == org_id,
        ).first()
        if not client:
            raise ValueError("Client not found")

    project = Project(
        organization_id=org_id,
        client_id=data.client_id,
        name=data.name.strip(),
        description=data.description,
        budget=data.budget,
        currency=data.currency.upper(),
        status=data.status.value,
    )
    db.add(project)
    db.flush()
    db.add(ProjectMember(project_id=project.id, user_id=user_id, role=Role.MANAGER.value))
    activity_service.log_activity(
        db,
        organization_id=org_id,
        activity_type=ActivityType.CREATED,
        description=f"Project {project.name} created",
        actor_user_id=user_id,
        entity_type="project",
        entity_id=project.id,
    )
    db.commit()
    db.refresh(project)
    return project


def update_project(db: Session, project: Project, data: ProjectUpdate) -> Project:
    updates = data.model_dump(exclude_unset=True)
    for field, value in updates.items():
        if value is None and field in ("name", "budget", "currency", "status"):
            continue
        if field == "status":
            value = value.value
        if field == "currency":
            value = value.upper()
        setattr(project, field, value)
    db.commit()
    db.refresh(project)
    return project


def delete_project(db: Session, project: Project) -> None:
    db.delete(project)
    db.commit()


def list_members(db: Session, project: Project) -> list[ProjectMember]:
    return db.query(ProjectMember).options(joinedload(ProjectMember.user)).filter(
        ProjectMember.project_id == project.id
    ).order_by(ProjectMember.created_at).all()


def upsert_member(db: Session, project: Project, data: ProjectMemberUpsert) -> ProjectMember:
    """Add a member or update their role/rates. The user must belong to the org."""
    if not org_service.is_member(db, project.organization_id, data.user_id):
        raise ValueError("User is not a member of this organization")
    member = get_membership(db, project.id, data.user_id)
    if member is None:
        member = ProjectMember(project_id=project.id, user_id=data.user_id)
        db.add(member)
    member.role = data.role.value
    member.pay_rate = data.pay_rate
    member.bill_rate = data.bill_rate
    db.commit()
    db.refresh(member)
    return member


def remove_member(db: Session, project: Project, user_id: UUID) -> bool:
    member = get_membership(db, project.id, user_id)
    if not member:
        return False
    db.delete(member)
    db.commit()
    return True


def add_org_managers(db: Session, project: Project) -> int:
    """Ensure every ADMIN/MANAGER of the org is a project member. Flushes only."""
    added = 0
    for user_id in org_service.member_ids_with_roles(
        db, project.organization_id, [Role.ADMIN.value, Role.MANAGER.value]
    ):
        if get_membership(db, project.id, user_id) is None:
            db.add(ProjectMember(project_id=project.id, user_id=user_id, role=Role.MANAGER.value))
            added += 1
    db.flush()
    return added
