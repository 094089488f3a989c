from flask import Blueprint, request, jsonify, current_app
import logging

from models import Result

logger = logging.getLogger(__name__)

api_bp = Blueprint('api', __name__)


def get_care_service():
    return current_app.extensions['care_service']


def _success(data=None, status_code=200):
    return jsonify({'status': 'success', 'data': data}), status_code


def _error(message, status_code=400):
    return jsonify({'status': 'error', 'message': message}), status_code


def _json_body():
    return request.get_json(silent=True) or {}


def _missing_fields(data, *fields):
    return [name for name in fields if not isinstance(data.get(name), str) or not data[name].strip()]


def _result_response(result: Result, status_code=200):
    """Turn a service Result into the JSON envelope; 'not found' errors become 404."""
    if result.is_ok:
        return _success(result.value, status_code)
    status = 404 if result.error.lower().endswith('not found') else 400
    logger.info(f'Request {request.method} {request.path} rejected: {result.error}')
    return _error(result.error, status)


def _record_or_404(record, label):
    if record is None:
        return _error(f'{label} not found', 404)
    return _success(record.to_dict())


@api_bp.route('/health', methods=['GET'])
def health_check():
    """Backend liveness probe"""
    return _success(get_care_service().health_check())


@api_bp.route('/stats', methods=['GET'])
def get_stats():
    return _success(get_care_service().get_stats().to_dict())


# Patients

@api_bp.route('/patients', methods=['POST'])
def register_patient():
    """Register a patient; body: {name, condition, email}"""
    data = _json_body()
    missing = _missing_fields(data, 'name', 'condition', 'email')
    if missing:
        return _error(f"Missing required fields: {', '.join(missing)}")

    patient_id = get_care_service().register_patient(data['name'], data['condition'], data['email'])
    return _success(patient_id, 201)


@api_bp.route('/patients', methods=['GET'])
def find_patient():
    """Look a patient up by email (?email=...)"""
    email = request.args.get('email', '').strip()
    if not email:
        return _error('Query parameter email is required')
    return _record_or_404(get_care_service().find_patient_by_email(email), 'Patient')


@api_bp.route('/patients/unassigned', methods=['GET'])
def get_unassigned_patients():
    patients = get_care_service().get_unassigned_patients()
    return _success([patient.to_dict() for patient in patients])


@api_bp.route('/patients/<patient_id>', methods=['GET'])
def get_patient(patient_id):
    return _record_or_404(get_care_service().get_patient(patient_id), 'Patient')


@api_bp.route('/patients/<patient_id>/assign', methods=['POST'])
def assign_patient(patient_id):
    data = _json_body()
    if _missing_fields(data, 'doctorId'):
        return _error('Missing required fields: doctorId')
    return _result_response(get_care_service().assign_patient_to_doctor(patient_id, data['doctorId']))


@api_bp.route('/patients/<patient_id>/unassign', methods=['POST'])
def unassign_patient(patient_id):
    data = _json_body()
    if _missing_fields(data, 'doctorId'):
        return _error('Missing required fields: doctorId')
    return _result_response(get_care_service().unassign_patient(patient_id, data['doctorId']))


@api_bp.route('/patients/<patient_id>/queries', methods=['GET'])
def get_patient_queries(patient_id):
    queries = get_care_service().get_patient_queries(patient_id)
    return _success([query.to_dict() for query in queries])


# Doctors

@api_bp.route('/doctors', methods=['POST'])
def register_doctor():
    """Register a doctor; body: {name, specialization}"""
    data = _json_body()
    missing = _missing_fields(data, 'name', 'specialization')
    if missing:
        return _error(f"Missing required fields: {', '.join(missing)}")

    doctor_id = get_care_service().register_doctor(data['name'], data['specialization'])
    return _success(doctor_id, 201)


@api_bp.route('/doctors', methods=['GET'])
def get_all_doctors():
    return _success([doctor.to_dict() for doctor in get_care_service().get_all_doctors()])


@api_bp.route('/doctors/<doctor_id>', methods=['GET'])
def get_doctor(doctor_id):
    return _record_or_404(get_care_service().get_doctor(doctor_id), 'Doctor')


@api_bp.route('/doctors/<doctor_id>/patients', methods=['GET'])
def get_doctor_patients(doctor_id):
    patients = get_care_service().get_doctor_patients(doctor_id)
    return _success([patient.to_dict() for patient in patients])


@api_bp.route('/doctors/<doctor_id>/queries', methods=['GET'])
def get_doctor_queries(doctor_id):
    queries = get_care_service().get_doctor_queries(doctor_id)
    return _success([query.to_dict() for query in queries])


# Queries

@api_bp.route('/queries', methods=['POST'])
def submit_query():
    """Submit a medical query; body: {patientId, title, description}"""
    data = _json_body()
    missing = _missing_fields(data, 'patientId', 'title', 'description')
    if missing:
        return _error(f"Missing required fields: {', '.join(missing)}")

    result = get_care_service().submit_query(data['patientId'], data['title'], data['description'])
    return _result_response(result, 201)


@api_bp.route('/queries/pending', methods=['GET'])
def get_pending_queries():
    return _success([query.to_dict() for query in get_care_service().get_pending_queries()])


@api_bp.route('/queries/<query_id>', methods=['GET'])
def get_query(query_id):
    return _record_or_404(get_care_service().get_query(query_id), 'Query')


@api_bp.route('/queries/<query_id>/take', methods=['POST'])
def take_query(query_id):
    data = _json_body()
    if _missing_fields(data, 'doctorId'):
        return _error('Missing required fields: doctorId')
    return _result_response(get_care_service().take_query(query_id, data['doctorId']))


@api_bp.route('/queries/<query_id>/respond', methods=['POST'])
def respond_to_query(query_id):
    """Complete a query with the doctor's response; body: {doctorId, response}"""
    data = _json_body()
    if _missing_fields(data, 'doctorId'):
        return _error('Missing required fields: doctorId')
    response_text = data.get('response') if isinstance(data.get('response'), str) else ''
    return _result_response(get_care_service().respond_to_query(query_id, data['doctorId'], response_text))
