import datetime as dt
from typing import Dict, List, Literal, Optional, Union

from pydantic import (
    BaseModel, ConfigDict, Field, PositiveInt, PrivateAttr, ValidationInfo, field_validator,
)
from pydantic.alias_generators import to_camel

from helpers import new_id

ADULT_ROLES = ('asm', 'committee', 'mbc')
APPROVER_ROLES = ADULT_ROLES
SMC_BOR_TYPES = ('SMC', 'BOR')

Role = Literal['scout', 'asm', 'committee', 'mbc']


class Record(BaseModel):
    # Stored documents use camelCase keys (fromDate, signupLimit, ...)
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# --- Role details: one payload shape per role ---

class ScoutDetails(Record):
    pass


class AsmDetails(Record):
    patrols: List[str] = Field(default_factory=list)


class CommitteeDetails(Record):
    position: Optional[str] = None


class MbcDetails(Record):
    merit_badges: List[str] = Field(default_factory=list)


DETAILS_BY_ROLE = {
    'scout': ScoutDetails,
    'asm': AsmDetails,
    'committee': CommitteeDetails,
    'mbc': MbcDetails,
}

RoleDetails = Union[ScoutDetails, AsmDetails, CommitteeDetails, MbcDetails]


class User(Record):
    id: str = Field(default_factory=new_id)
    name: str
    email: str = ''
    role: Role
    details: RoleDetails = Field(default=None, validate_default=True)
    medical_valid_until: Optional[dt.date] = None
    # course name -> status, kept in insertion order
    training: Dict[str, str] = Field(default_factory=dict)

    @field_validator('details', mode='before')
    @classmethod
    def details_for_role(cls, value, info: ValidationInfo):
        role = info.data.get('role')
        if role not in DETAILS_BY_ROLE:
            raise ValueError('details need a valid role')
        details_cls = DETAILS_BY_ROLE[role]
        if isinstance(value, details_cls):
            return value
        if isinstance(value, BaseModel):
            value = value.model_dump(by_alias=True)
        return details_cls.model_validate(value or {})

    @property
    def is_adult(self):
        return self.role in ADULT_ROLES


class Event(Record):
    id: str = Field(default_factory=new_id)
    name: str
    from_date: dt.date
    to_date: dt.date
    close_date: dt.date
    location: str = ''
    scout_in_charge: str = ''
    logistics: str = ''
    signup_limit: Optional[PositiveInt] = None
    approved: bool = False
    created_by: Optional[str] = None


class Registration(Record):
    id: str = Field(default_factory=new_id)
    event_id: str
    user_id: str
    date: dt.datetime
    cancelled: bool = False
    cancelled_date: Optional[dt.datetime] = None


class SmcBorRequest(Record):
    id: str = Field(default_factory=new_id)
    user_id: str
    type: Literal['SMC', 'BOR']
    date: dt.date
    status: str = 'pending'
    created_at: dt.datetime


class AdultSignup(Record):
    id: str = Field(default_factory=new_id)
    user_id: str
    role: str = 'Volunteer'
    date: dt.date


class PortalState(Record):
    """The whole application state, persisted as a single JSON document."""
    users: List[User] = Field(default_factory=list)
    events: List[Event] = Field(default_factory=list)
    registrations: List[Registration] = Field(default_factory=list)
    smcbor: List[SmcBorRequest] = Field(default_factory=list)
    adult_leader_signups: List[AdultSignup] = Field(default_factory=list)
    current_user_id: Optional[str] = None
    # storage version this state was read at; None until loaded or saved
    _version: Optional[int] = PrivateAttr(default=None)

    @property
    def version(self):
        return self._version

    def to_json(self):
        return self.model_dump_json(by_alias=True)

    @classmethod
    def from_json(cls, text):
        return cls.model_validate_json(text)
