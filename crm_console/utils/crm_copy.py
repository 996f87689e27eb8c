"""Record vocabulary per deployment (learners, influencers, contacts, job seekers)."""

from dataclasses import dataclass

from crm_console.config import settings


@dataclass(frozen=True)
class CrmCopy:
    page_title: str
    singular: str
    plural: str
    singular_title: str
    plural_title: str


CRM_COPY: dict[str, CrmCopy] = {
    "academy": CrmCopy("Learners", "learner", "learners", "Learner", "Learners"),
    "rosa": CrmCopy("Influencers", "influencer", "influencers", "Influencer", "Influencers"),
    "sales": CrmCopy("Contacts", "contact", "contacts", "Contact", "Contacts"),
    "hr": CrmCopy("Job Seeker", "job seeker", "job seekers", "Job Seeker", "Job Seekers"),
}


def get_crm_copy(environment: str | None = None) -> CrmCopy:
    return CRM_COPY.get(environment or settings.CRM_ENVIRONMENT, CRM_COPY["academy"])
