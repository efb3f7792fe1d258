"""Demo data for Collybrix.

Loads a fixed set of sample client projects into an empty database. The
operation is idempotent: when any project exists nothing is inserted.
"""

from __future__ import annotations

from typing import Any

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from collybrix.database.models.project import Project
from collybrix.database.queries.project import count_projects

logger = structlog.get_logger(__name__)

ALREADY_SEEDED = "Database already seeded"


def _milestone(date: str, type: str, name: str, description: str, deliverable: str) -> dict[str, str]:
    return {
        "date": date,
        "type": type,
        "name": name,
        "description": description,
        "deliverable": deliverable,
    }


DEMO_PROJECTS: list[dict[str, Any]] = [
    {
        "name": "E-commerce Platform",
        "company": "TechStartup Inc",
        "status": "active",
        "started_date": "2024-01-15",
        "pipeline_state": "in progress",
        "initial_pricing": 15000,
        "final_price": 18500,
        "project_type": "Software Factory",
        "mmr": 2500,
        "payment_status": "paid",
        "description": (
            "Full-featured e-commerce platform with inventory management, "
            "payment processing, and customer analytics dashboard."
        ),
        "docs_link": "https://docs.example.com/ecommerce-platform",
        "milestones": [
            _milestone("2024-01-15", "kickoff", "Project Kickoff", "Project initialization", "Project charter"),
            _milestone("2024-02-15", "design", "Design Phase Complete", "UI/UX finalized", "Design system"),
            _milestone("2024-03-15", "development", "Core Development", "Main features", "Core implemented"),
            _milestone("2024-04-15", "testing", "QA Testing", "Quality assurance", "Test reports"),
            _milestone("2024-05-15", "launch", "Production Launch", "Goes live", "Live platform"),
        ],
    },
    {
        "name": "Mobile App Development",
        "company": "FutureWorks Ltd",
        "status": "active",
        "started_date": "2024-02-20",
        "pipeline_state": "in progress",
        "initial_pricing": 25000,
        "final_price": 28000,
        "project_type": "Accelleration",
        "mmr": 4200,
        "payment_status": "partial",
        "description": (
            "Native iOS and Android mobile application with real-time "
            "synchronization and offline capabilities."
        ),
        "docs_link": "https://docs.example.com/mobile-app",
        "milestones": [
            _milestone("2024-02-20", "kickoff", "Project Start", "Mobile app initiated", "Requirements"),
            _milestone("2024-03-20", "design", "Mobile Design", "UI/UX design", "Mockups"),
            _milestone("2024-04-20", "development", "App Development", "Native development", "Beta version"),
            _milestone("2024-05-20", "launch", "App Store Launch", "Release", "Published apps"),
        ],
    },
    {
        "name": "Business Consulting",
        "company": "Enterprise Solutions",
        "status": "active",
        "started_date": "2023-11-10",
        "pipeline_state": "finished",
        "initial_pricing": 8000,
        "final_price": 9500,
        "project_type": "Consulting",
        "mmr": 1500,
        "payment_status": "paid",
        "description": "Strategic business process optimization and digital transformation consulting.",
        "docs_link": "https://docs.example.com/business-consulting",
        "milestones": [
            _milestone("2023-11-10", "kickoff", "Engagement Start", "Begins", "Scope document"),
            _milestone("2023-12-10", "analysis", "Analysis Phase", "Analysis", "Analysis report"),
            _milestone("2024-01-10", "implementation", "Implementation", "Improvements", "Plan"),
            _milestone("2024-02-10", "launch", "Completion", "Finished", "Final report"),
        ],
    },
    {
        "name": "SaaS Platform",
        "company": "CloudVentures",
        "status": "active",
        "started_date": "2024-03-05",
        "pipeline_state": "technical evaluation",
        "initial_pricing": 50000,
        "final_price": 0,
        "project_type": "SaaS",
        "mmr": 8000,
        "payment_status": "pending",
        "description": "Cloud-based SaaS platform for team collaboration with advanced reporting.",
        "docs_link": "https://docs.example.com/saas-platform",
        "milestones": [
            _milestone("2024-03-05", "kickoff", "Project Initiation", "Starts", "Project plan"),
            _milestone("2024-04-05", "development", "MVP Development", "MVP dev", "MVP release"),
            _milestone("2024-05-05", "testing", "Beta Testing", "Beta", "Feedback report"),
        ],
    },
    {
        "name": "Data Analytics Tool",
        "company": "DataInsights Co",
        "status": "active",
        "started_date": "2024-04-01",
        "pipeline_state": "qualification",
        "initial_pricing": 12000,
        "final_price": 0,
        "project_type": "Software Factory",
        "mmr": 2000,
        "payment_status": "pending",
        "description": "Advanced data visualization and analytics tool for business intelligence.",
        "docs_link": "https://docs.example.com/analytics-tool",
        "milestones": [
            _milestone("2024-04-01", "kickoff", "Project Kickoff", "Begins", "Requirements"),
            _milestone("2024-05-01", "development", "Feature Development", "Dev", "Features"),
        ],
    },
    {
        "name": "Website Redesign",
        "company": "RetailBrand Co",
        "status": "active",
        "started_date": "2024-04-15",
        "pipeline_state": "discovery",
        "initial_pricing": 5000,
        "final_price": 0,
        "project_type": "Consulting",
        "mmr": 0,
        "payment_status": "pending",
        "description": "Modern responsive website redesign with improved user experience.",
        "docs_link": "https://docs.example.com/website-redesign",
        "milestones": [
            _milestone("2024-04-15", "kickoff", "Discovery Meeting", "Discovery", "Document"),
            _milestone("2024-05-15", "design", "Website Design", "Design", "Mockups"),
        ],
    },
]


async def seed_projects(session: AsyncSession) -> dict[str, Any]:
    """Insert the demo projects unless the projects table has rows.

    Returns:
        ``{"message", "count"}`` when the database was already seeded,
        otherwise ``{"message", "insertedIds"}`` with the new project ids.
    """
    existing = await count_projects(session)
    if existing > 0:
        logger.info("seed_skipped", existing_projects=existing)
        return {"message": ALREADY_SEEDED, "count": existing}

    projects = [Project(**fields) for fields in DEMO_PROJECTS]
    session.add_all(projects)
    await session.commit()

    inserted = [str(project.id) for project in projects]
    logger.info("seed_completed", projects_inserted=len(inserted))
    return {
        "message": f"Successfully seeded {len(inserted)} projects",
        "insertedIds": inserted,
    }
