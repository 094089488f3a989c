import os
import sys
import unittest
import json
import tempfile

# Add parent directory to sys.path
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from app_factory import create_app
from utils import database

class APITestCase(unittest.TestCase):
    def setUp(self):
        # Fresh database file per test
        fd, self.db_path = tempfile.mkstemp(suffix='.db')
        os.close(fd)
        self.original_db_path = database.DB_PATH

        self.app = create_app('testing', {'DB_PATH': self.db_path})
        self.client = self.app.test_client()

    def tearDown(self):
        database.set_db_path(self.original_db_path)
        if os.path.exists(self.db_path):
            os.remove(self.db_path)

    def post(self, path, payload):
        response = self.client.post(path, json=payload)
        return response, json.loads(response.data)

    def get(self, path):
        response = self.client.get(path)
        return response, json.loads(response.data)

    def register_doctor(self, name="Dr. Sarah Chen", specialization="Endocrinology"):
        _, data = self.post('/api/doctors', {'name': name, 'specialization': specialization})
        return data['data']

    def register_patient(self, email="john@example.com"):
        _, data = self.post('/api/patients', {'name': 'John Doe', 'condition': 'Type 2 Diabetes', 'email': email})
        return data['data']

    def test_health(self):
        response, data = self.get('/api/health')
        self.assertEqual(response.status_code, 200)
        self.assertEqual(data, {'status': 'success', 'data': 'TrustCareConnect backend is running!'})

    def test_register_patient(self):
        response, data = self.post('/api/patients', {
            'name': 'John Doe', 'condition': 'Type 2 Diabetes', 'email': 'john@example.com'})
        self.assertEqual(response.status_code, 201)
        patient_id = data['data']

        response, data = self.get(f'/api/patients/{patient_id}')
        self.assertEqual(response.status_code, 200)
        self.assertEqual(data['data']['name'], 'John Doe')
        self.assertTrue(data['data']['isActive'])
        self.assertIsNone(data['data']['assignedDoctorId'])

    def test_register_patient_missing_fields(self):
        response, data = self.post('/api/patients', {'name': 'John Doe'})
        self.assertEqual(response.status_code, 400)
        self.assertEqual(data['status'], 'error')
        self.assertEqual(data['message'], 'Missing required fields: condition, email')

    def test_malformed_json_body(self):
        response = self.client.post('/api/doctors', data='{not json', content_type='application/json')
        self.assertEqual(response.status_code, 400)
        self.assertIn('Missing required fields', json.loads(response.data)['message'])

    def test_unknown_records_return_404(self):
        for path in ('/api/patients/patient_404', '/api/doctors/doctor_404', '/api/queries/query_404'):
            response, data = self.get(path)
            self.assertEqual(response.status_code, 404, path)
            self.assertEqual(data['status'], 'error')
            self.assertTrue(data['message'].endswith('not found'))

    def test_find_patient_by_email(self):
        patient_id = self.register_patient()

        response, data = self.get('/api/patients?email=JOHN@example.com')
        self.assertEqual(response.status_code, 200)
        self.assertEqual(data['data']['id'], patient_id)

        response, _ = self.get('/api/patients?email=nobody@example.com')
        self.assertEqual(response.status_code, 404)

        response, _ = self.get('/api/patients')
        self.assertEqual(response.status_code, 400)

    def test_doctor_endpoints(self):
        first = self.register_doctor()
        second = self.register_doctor("Dr. James Wilson", "Cardiology")

        _, data = self.get('/api/doctors')
        self.assertEqual([d['id'] for d in data['data']], [first, second])

        _, data = self.get(f'/api/doctors/{second}')
        self.assertEqual(data['data']['specialization'], 'Cardiology')

    def test_assign_and_unassign(self):
        doctor_id = self.register_doctor()
        patient_id = self.register_patient()

        response, _ = self.post(f'/api/patients/{patient_id}/assign', {'doctorId': doctor_id})
        self.assertEqual(response.status_code, 200)

        _, data = self.get(f'/api/doctors/{doctor_id}/patients')
        self.assertEqual([p['id'] for p in data['data']], [patient_id])
        _, data = self.get('/api/patients/unassigned')
        self.assertEqual(data['data'], [])

        response, _ = self.post(f'/api/patients/{patient_id}/unassign', {'doctorId': doctor_id})
        self.assertEqual(response.status_code, 200)
        _, data = self.get('/api/patients/unassigned')
        self.assertEqual([p['id'] for p in data['data']], [patient_id])

    def test_assign_errors(self):
        patient_id = self.register_patient()

        response, data = self.post(f'/api/patients/{patient_id}/assign', {'doctorId': 'doctor_404'})
        self.assertEqual(response.status_code, 404)
        self.assertEqual(data['message'], 'Doctor not found')

        response, data = self.post(f'/api/patients/{patient_id}/assign', {})
        self.assertEqual(response.status_code, 400)
        self.assertEqual(data['message'], 'Missing required fields: doctorId')

    def test_submit_query_requires_assignment(self):
        patient_id = self.register_patient()

        response, data = self.post('/api/queries', {
            'patientId': patient_id, 'title': 'Headache', 'description': 'Severe headache'})

        self.assertEqual(response.status_code, 400)
        self.assertEqual(data['message'], 'Patient must be assigned to a doctor before submitting queries')

    def test_query_lifecycle(self):
        doctor_id = self.register_doctor()
        patient_id = self.register_patient()
        self.post(f'/api/patients/{patient_id}/assign', {'doctorId': doctor_id})

        response, data = self.post('/api/queries', {
            'patientId': patient_id, 'title': 'Blood sugar', 'description': 'Readings above 200'})
        self.assertEqual(response.status_code, 201)
        query_id = data['data']

        _, data = self.get('/api/queries/pending')
        self.assertEqual([q['id'] for q in data['data']], [query_id])
        self.assertEqual(data['data'][0]['status'], 'pending')
        self.assertIsNotNone(data['data'][0]['aiDraftResponse'])

        response, _ = self.post(f'/api/queries/{query_id}/take', {'doctorId': doctor_id})
        self.assertEqual(response.status_code, 200)
        _, data = self.get(f'/api/doctors/{doctor_id}/queries')
        self.assertEqual(data['data'][0]['status'], 'doctor_review')

        response, _ = self.post(f'/api/queries/{query_id}/respond', {
            'doctorId': doctor_id, 'response': 'Increase metformin and recheck in a week'})
        self.assertEqual(response.status_code, 200)

        _, data = self.get(f'/api/patients/{patient_id}/queries')
        self.assertEqual(data['data'][0]['status'], 'completed')
        self.assertEqual(data['data'][0]['response'], 'Increase metformin and recheck in a week')

        _, data = self.get('/api/stats')
        self.assertEqual(data['data'], {
            'totalPatients': 1, 'totalDoctors': 1, 'totalQueries': 1,
            'pendingQueries': 0, 'completedQueries': 1,
        })

    def test_respond_rejects_empty_response(self):
        doctor_id = self.register_doctor()
        patient_id = self.register_patient()
        self.post(f'/api/patients/{patient_id}/assign', {'doctorId': doctor_id})
        _, data = self.post('/api/queries', {'patientId': patient_id, 'title': 'T', 'description': 'D'})

        response, data = self.post(f"/api/queries/{data['data']}/respond", {'doctorId': doctor_id})

        self.assertEqual(response.status_code, 400)
        self.assertEqual(data['message'], 'Response cannot be empty')

if __name__ == '__main__':
    unittest.main()
