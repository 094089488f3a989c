from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Generic, Optional, TypeVar

T = TypeVar('T')


class QueryStatus(str, Enum):
    PENDING = 'pending'
    DOCTOR_REVIEW = 'doctor_review'
    COMPLETED = 'completed'


@dataclass
class Patient:
    """A registered patient. Serialised with the interface's camelCase names."""
    id: str
    name: str
    email: str
    condition: str
    is_active: bool = True
    assigned_doctor_id: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'name': self.name,
            'email': self.email,
            'condition': self.condition,
            'isActive': self.is_active,
            'assignedDoctorId': self.assigned_doctor_id,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Patient':
        return cls(
            id=data['id'],
            name=data['name'],
            email=data['email'],
            condition=data['condition'],
            is_active=bool(data.get('isActive', True)),
            assigned_doctor_id=data.get('assignedDoctorId'),
        )


@dataclass
class Doctor:
    id: str
    name: str
    specialization: str

    def to_dict(self) -> Dict[str, Any]:
        return {'id': self.id, 'name': self.name, 'specialization': self.specialization}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Doctor':
        return cls(id=data['id'], name=data['name'], specialization=data['specialization'])


@dataclass
class MedicalQuery:
    """A patient-submitted medical question and its review state."""
    id: str
    patient_id: str
    title: str
    description: str
    status: QueryStatus
    created_at: int
    updated_at: int
    doctor_id: Optional[str] = None
    ai_draft_response: Optional[str] = None
    response: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'patientId': self.patient_id,
            'doctorId': self.doctor_id,
            'title': self.title,
            'description': self.description,
            'status': self.status.value,
            'createdAt': self.created_at,
            'updatedAt': self.updated_at,
            'aiDraftResponse': self.ai_draft_response,
            'response': self.response,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'MedicalQuery':
        return cls(
            id=data['id'],
            patient_id=data['patientId'],
            title=data['title'],
            description=data['description'],
            status=QueryStatus(data['status']),
            created_at=int(data['createdAt']),
            updated_at=int(data['updatedAt']),
            doctor_id=data.get('doctorId'),
            ai_draft_response=data.get('aiDraftResponse'),
            response=data.get('response'),
        )


@dataclass
class SystemStats:
    total_patients: int = 0
    total_doctors: int = 0
    total_queries: int = 0
    pending_queries: int = 0
    completed_queries: int = 0

    def to_dict(self) -> Dict[str, int]:
        return {
            'totalPatients': self.total_patients,
            'totalDoctors': self.total_doctors,
            'totalQueries': self.total_queries,
            'pendingQueries': self.pending_queries,
            'completedQueries': self.completed_queries,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'SystemStats':
        return cls(
            total_patients=int(data.get('totalPatients', 0)),
            total_doctors=int(data.get('totalDoctors', 0)),
            total_queries=int(data.get('totalQueries', 0)),
            pending_queries=int(data.get('pendingQueries', 0)),
            completed_queries=int(data.get('completedQueries', 0)),
        )


@dataclass
class Result(Generic[T]):
    """
    Two-variant outcome of an update call: ok(value) or err(message).

    Use the Result.ok / Result.err constructors rather than building one by hand.
    """
    value: Optional[T] = None
    error: Optional[str] = None

    @classmethod
    def ok(cls, value: Optional[T] = None) -> 'Result[T]':
        return cls(value=value)

    @classmethod
    def err(cls, message: str) -> 'Result[T]':
        return cls(error=message)

    @property
    def is_ok(self) -> bool:
        return self.error is None

    def to_dict(self) -> Dict[str, Any]:
        if self.is_ok:
            return {'ok': self.value}
        return {'err': self.error}


@dataclass
class ApiResponse(Generic[T]):
    """Envelope the API client hands back for every call."""
    success: bool
    data: Optional[T] = None
    error: Optional[str] = None
    extra: Dict[str, Any] = field(default_factory=dict)
