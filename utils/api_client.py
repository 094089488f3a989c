import logging
from typing import Any, Callable, Dict, List, Optional

import requests

from models import ApiResponse, Doctor, MedicalQuery, Patient, SystemStats

logger = logging.getLogger(__name__)


class TrustCareClient:
    """
    HTTP client for the TrustCareConnect backend.

    Every call returns an ApiResponse; transport failures, non-2xx replies and
    error results are reported through ``success=False`` and ``error`` instead
    of raising.
    """

    def __init__(self, base_url: str = "http://localhost:5000", timeout: float = 10.0,
                 session: Optional[requests.Session] = None):
        self.base_url = base_url.rstrip('/')
        self.timeout = timeout
        self.session = session or requests.Session()

    def _call(self, operation: str, method: str, path: str,
              decode: Optional[Callable[[Any], Any]] = None,
              json: Optional[Dict[str, Any]] = None,
              params: Optional[Dict[str, Any]] = None,
              missing_ok: bool = False) -> ApiResponse:
        url = f"{self.base_url}/api{path}"
        try:
            response = self.session.request(method, url, json=json, params=params, timeout=self.timeout)
        except requests.RequestException as e:
            logger.error(f"Error {operation}: {e}")
            return ApiResponse(success=False, error=str(e) or f"Failed to {operation}")

        try:
            body = response.json()
        except ValueError:
            body = {}

        if missing_ok and response.status_code == 404:
            return ApiResponse(success=True, data=None)

        if not response.ok or body.get('status') != 'success':
            message = body.get('message') or f"Failed to {operation} (HTTP {response.status_code})"
            logger.warning(f"Error {operation}: {message}")
            return ApiResponse(success=False, error=message, extra={'status_code': response.status_code})

        data = body.get('data')
        return ApiResponse(success=True, data=decode(data) if decode and data is not None else data)

    @staticmethod
    def _many(record_type) -> Callable[[List[Dict[str, Any]]], List[Any]]:
        return lambda items: [record_type.from_dict(item) for item in items]

    # Patients

    def register_patient(self, name: str, condition: str, email: str) -> ApiResponse:
        return self._call('register patient', 'POST', '/patients',
                          json={'name': name, 'condition': condition, 'email': email})

    def get_patient(self, patient_id: str) -> ApiResponse:
        return self._call('get patient', 'GET', f'/patients/{patient_id}',
                          decode=Patient.from_dict, missing_ok=True)

    def find_patient_by_email(self, email: str) -> ApiResponse:
        return self._call('find patient by email', 'GET', '/patients', params={'email': email},
                          decode=Patient.from_dict, missing_ok=True)

    def get_unassigned_patients(self) -> ApiResponse:
        return self._call('get unassigned patients', 'GET', '/patients/unassigned',
                          decode=self._many(Patient))

    def assign_patient_to_doctor(self, patient_id: str, doctor_id: str) -> ApiResponse:
        return self._call('assign patient to doctor', 'POST', f'/patients/{patient_id}/assign',
                          json={'doctorId': doctor_id})

    def unassign_patient(self, patient_id: str, doctor_id: str) -> ApiResponse:
        return self._call('unassign patient', 'POST', f'/patients/{patient_id}/unassign',
                          json={'doctorId': doctor_id})

    def get_doctor_patients(self, doctor_id: str) -> ApiResponse:
        return self._call('get doctor patients', 'GET', f'/doctors/{doctor_id}/patients',
                          decode=self._many(Patient))

    # Doctors

    def register_doctor(self, name: str, specialization: str) -> ApiResponse:
        return self._call('register doctor', 'POST', '/doctors',
                          json={'name': name, 'specialization': specialization})

    def get_doctor(self, doctor_id: str) -> ApiResponse:
        return self._call('get doctor', 'GET', f'/doctors/{doctor_id}',
                          decode=Doctor.from_dict, missing_ok=True)

    def get_all_doctors(self) -> ApiResponse:
        return self._call('get all doctors', 'GET', '/doctors', decode=self._many(Doctor))

    # Queries

    def submit_query(self, patient_id: str, title: str, description: str) -> ApiResponse:
        return self._call('submit query', 'POST', '/queries',
                          json={'patientId': patient_id, 'title': title, 'description': description})

    def get_query(self, query_id: str) -> ApiResponse:
        return self._call('get query', 'GET', f'/queries/{query_id}',
                          decode=MedicalQuery.from_dict, missing_ok=True)

    def get_patient_queries(self, patient_id: str) -> ApiResponse:
        return self._call('get patient queries', 'GET', f'/patients/{patient_id}/queries',
                          decode=self._many(MedicalQuery))

    def get_pending_queries(self) -> ApiResponse:
        return self._call('get pending queries', 'GET', '/queries/pending', decode=self._many(MedicalQuery))

    def get_doctor_queries(self, doctor_id: str) -> ApiResponse:
        return self._call('get doctor queries', 'GET', f'/doctors/{doctor_id}/queries',
                          decode=self._many(MedicalQuery))

    def take_query(self, query_id: str, doctor_id: str) -> ApiResponse:
        return self._call('take query', 'POST', f'/queries/{query_id}/take', json={'doctorId': doctor_id})

    def respond_to_query(self, query_id: str, doctor_id: str, response: str) -> ApiResponse:
        return self._call('respond to query', 'POST', f'/queries/{query_id}/respond',
                          json={'doctorId': doctor_id, 'response': response})

    # AI drafting

    def request_ai_draft(self, query_text: str, condition: str, provider: Optional[str] = None) -> ApiResponse:
        payload = {'queryText': query_text, 'condition': condition}
        if provider:
            payload['provider'] = provider
        return self._call('request AI draft', 'POST', '/ai/query', json=payload)

    def get_draft_sections(self, query_id: str) -> ApiResponse:
        return self._call('get draft sections', 'GET', f'/queries/{query_id}/draft/sections')

    # System

    def get_stats(self) -> ApiResponse:
        return self._call('get stats', 'GET', '/stats', decode=SystemStats.from_dict)

    def health_check(self) -> ApiResponse:
        return self._call('health check', 'GET', '/health')
