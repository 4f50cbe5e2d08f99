"""
Global search service.

Plain ILIKE matching across a handful of entity types, org-scoped, capped at
RESULTS_PER_TYPE rows per type. Results share one shape:
{type, id, title, subtitle, status}.
"""

from uuid import UUID

from sqlalchemy import or_
from sqlalchemy.orm import Session

from chronus.db.models import Customer, Lead, Project, ProjectMember, Task, Ticket

MIN_QUERY_LENGTH = 2
RESULTS_PER_TYPE = 5


def _check_query(q: str | None) -> str:
    term = (q or "").strip()
    if len(term) < MIN_QUERY_LENGTH:
        raise ValueError(f"Query must be at least {MIN_QUERY_LENGTH} characters")
    return f"%{term}%"


def _result(type_: str, id_, title: str, subtitle: str | None, status: str | None) -> dict:
    return {"type": type_, "id": str(id_), "title": title, "subtitle": subtitle, "status": status}


def search_crm(db: Session, org_id: UUID, q: str) -> list[dict]:
    """Customers, leads and tickets matching q."""
    term = _check_query(q)
    results: list[dict] = []

    customers = db.query(Customer).filter(
        Customer.organization_id == org_id,
        or_(Customer.name.ilike(term), Customer.email.ilike(term), Customer.company.ilike(term)),
    ).order_by(Customer.name).limit(RESULTS_PER_TYPE).all()
    results.extend(_result("customer", c.id, c.name, c.email, c.status) for c in customers)

    leads = db.query(Lead).filter(
        Lead.organization_id == org_id,
        or_(Lead.name.ilike(term), Lead.email.ilike(term), Lead.company.ilike(term)),
    ).order_by(Lead.name).limit(RESULTS_PER_TYPE).all()
    results.extend(_result("lead", lead.id, lead.name, lead.company or lead.email, lead.status) for lead in leads)

    tickets = db.query(Ticket).filter(
        Ticket.organization_id == org_id,
        or_(Ticket.title.ilike(term), Ticket.description.ilike(term)),
    ).order_by(Ticket.created_at.desc()).limit(RESULTS_PER_TYPE).all()
    results.extend(_result("ticket", t.id, t.title, t.priority, t.status) for t in tickets)

    return results


def search_dev(db: Session, org_id: UUID, q: str, member_user_id: UUID | None = None) -> list[dict]:
    """
    Projects and tasks matching q.

    member_user_id restricts results to projects that user belongs to.
    """
    term = _check_query(q)
    results: list[dict] = []

    projects = db.query(Project).filter(
        Project.organization_id == org_id,
        or_(Project.name.ilike(term), Project.description.ilike(term)),
    )
    tasks = db.query(Task).filter(
        Task.organization_id == org_id,
        or_(Task.title.ilike(term), Task.description.ilike(term)),
    )
    if member_user_id:
        member_projects = db.query(ProjectMember.project_id).filter(ProjectMember.user_id == member_user_id)
        projects = projects.filter(Project.id.in_(member_projects))
        tasks = tasks.filter(Task.project_id.in_(member_projects))

    for project in projects.order_by(Project.name).limit(RESULTS_PER_TYPE).all():
        results.append(_result("project", project.id, project.name, project.description, project.status))
    for task in tasks.order_by(Task.created_at.desc()).limit(RESULTS_PER_TYPE).all():
        results.append(_result("task", task.id, task.title, task.priority, task.status))

    return results
