from enum import Enum


class PersonStatus(str, Enum):
    SUSPECT = "SUSPECT"                # Known contact, not yet engaged
    LEAD = "LEAD"                      # Engaged, showing interest
    CANDIDATE_FREE = "CANDIDATE_FREE"  # Enrolled on the free track
    CANDIDATE_PAID = "CANDIDATE_PAID"  # Enrolled on the paid track
    ALUMNI = "ALUMNI"                  # Completed the programme
    DEFERRED = "DEFERRED"              # Paused until a later date
    DISCONTINUED = "DISCONTINUED"      # Dropped out

    @property
    def label(self) -> str:
        return STATUS_LABELS[self]


STATUS_LABELS = {
    PersonStatus.SUSPECT: "Suspect",
    PersonStatus.LEAD: "Lead",
    PersonStatus.CANDIDATE_FREE: "Candidate (Free)",
    PersonStatus.CANDIDATE_PAID: "Candidate (Paid)",
    PersonStatus.ALUMNI: "Alumni",
    PersonStatus.DEFERRED: "Deferred",
    PersonStatus.DISCONTINUED: "Discontinued",
}


class Role(str, Enum):
    SUPER_ADMIN = "SUPER_ADMIN"
    ADMIN = "ADMIN"
    SALES = "SALES"
    COUNSELOR = "COUNSELOR"
    USER = "USER"
    MARKETER = "MARKETER"
    TRAINING_ADMIN = "TRAINING_ADMIN"


# Highest privilege first; used to pick one role out of a token's roles claim
ROLE_PRECEDENCE = (
    Role.SUPER_ADMIN,
    Role.ADMIN,
    Role.SALES,
    Role.COUNSELOR,
    Role.TRAINING_ADMIN,
    Role.MARKETER,
    Role.USER,
)
