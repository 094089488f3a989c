import sqlite3
import os
import time
import logging
from contextlib import contextmanager
from datetime import datetime
from typing import Any, Dict, List, Optional

from models import Doctor, MedicalQuery, Patient, QueryStatus, SystemStats

# Initialize logger
logger = logging.getLogger(__name__)

# Database file path, replaced by the application factory from configuration
DB_PATH = os.path.join(os.path.dirname(os.path.dirname(__file__)), 'trustcare.db')

DATABASE_VERSION = 1

PATIENT_COLUMNS = 'id, name, email, condition, is_active, assigned_doctor_id'
DOCTOR_COLUMNS = 'id, name, specialization'
QUERY_COLUMNS = ('id, patient_id, doctor_id, title, description, status, '
                 'created_at, updated_at, ai_draft_response, response')


def set_db_path(path: str) -> None:
    global DB_PATH
    DB_PATH = path
    logger.debug(f"Database path set to {path}")


def now_ns() -> int:
    return time.time_ns()


@contextmanager
def get_db_connection():
    """
    Context manager for database connections
    Ensures proper connection handling and cleanup
    """
    conn = None
    try:
        conn = sqlite3.connect(DB_PATH)
        conn.row_factory = sqlite3.Row
        yield conn
    except sqlite3.Error as e:
        if conn:
            conn.rollback()
        logger.error(f"Database error: {e}")
        raise
    finally:
        if conn:
            conn.close()


def init_db() -> None:
    """Initialize the database by creating necessary tables if they don't exist"""
    with get_db_connection() as conn:
        cursor = conn.cursor()

        # Text ids are derived from seq after insert (patient_1, doctor_1, query_1)
        cursor.execute('''
            CREATE TABLE IF NOT EXISTS patients (
                seq INTEGER PRIMARY KEY AUTOINCREMENT,
                id TEXT UNIQUE,
                name TEXT NOT NULL,
                email TEXT NOT NULL,
                condition TEXT NOT NULL,
                is_active INTEGER NOT NULL DEFAULT 1,
                assigned_doctor_id TEXT,
                created_at INTEGER NOT NULL
            )
        ''')

        cursor.execute('''
            CREATE TABLE IF NOT EXISTS doctors (
                seq INTEGER PRIMARY KEY AUTOINCREMENT,
                id TEXT UNIQUE,
                name TEXT NOT NULL,
                specialization TEXT NOT NULL,
                created_at INTEGER NOT NULL
            )
        ''')

        cursor.execute('''
            CREATE TABLE IF NOT EXISTS queries (
                seq INTEGER PRIMARY KEY AUTOINCREMENT,
                id TEXT UNIQUE,
                patient_id TEXT NOT NULL,
                doctor_id TEXT,
                title TEXT NOT NULL,
                description TEXT NOT NULL,
                status TEXT NOT NULL DEFAULT 'pending',
                created_at INTEGER NOT NULL,
                updated_at INTEGER NOT NULL,
                ai_draft_response TEXT,
                response TEXT,
                FOREIGN KEY (patient_id) REFERENCES patients(id)
            )
        ''')

        cursor.execute('CREATE INDEX IF NOT EXISTS idx_patients_email ON patients(email COLLATE NOCASE)')
        cursor.execute('CREATE INDEX IF NOT EXISTS idx_patients_doctor ON patients(assigned_doctor_id)')
        cursor.execute('CREATE INDEX IF NOT EXISTS idx_queries_patient ON queries(patient_id, created_at)')
        cursor.execute('CREATE INDEX IF NOT EXISTS idx_queries_doctor ON queries(doctor_id, created_at)')
        cursor.execute('CREATE INDEX IF NOT EXISTS idx_queries_status ON queries(status, created_at)')

        cursor.execute('''
            CREATE TABLE IF NOT EXISTS database_version (
                version INTEGER PRIMARY KEY,
                applied_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
                description TEXT
            )
        ''')
        cursor.execute('SELECT MAX(version) FROM database_version')
        current_version = cursor.fetchone()[0] or 0
        if current_version < DATABASE_VERSION:
            cursor.execute(
                'INSERT INTO database_version (version, description) VALUES (?, ?)',
                (DATABASE_VERSION, 'Patients, doctors and medical queries')
            )

        conn.commit()
        logger.info(f"Database initialized successfully at {DB_PATH}")


def _insert_with_prefixed_id(conn, table: str, prefix: str, columns: List[str], values: tuple) -> str:
    cursor = conn.cursor()
    placeholders = ', '.join('?' for _ in columns)
    cursor.execute(f'INSERT INTO {table} ({", ".join(columns)}) VALUES ({placeholders})', values)
    record_id = f"{prefix}_{cursor.lastrowid}"
    cursor.execute(f'UPDATE {table} SET id = ? WHERE seq = ?', (record_id, cursor.lastrowid))
    return record_id


# Row conversion

def _row_to_patient(row) -> Patient:
    return Patient(
        id=row['id'],
        name=row['name'],
        email=row['email'],
        condition=row['condition'],
        is_active=bool(row['is_active']),
        assigned_doctor_id=row['assigned_doctor_id'],
    )


def _row_to_doctor(row) -> Doctor:
    return Doctor(id=row['id'], name=row['name'], specialization=row['specialization'])


def _row_to_query(row) -> MedicalQuery:
    return MedicalQuery(
        id=row['id'],
        patient_id=row['patient_id'],
        doctor_id=row['doctor_id'],
        title=row['title'],
        description=row['description'],
        status=QueryStatus(row['status']),
        created_at=row['created_at'],
        updated_at=row['updated_at'],
        ai_draft_response=row['ai_draft_response'],
        response=row['response'],
    )


# Patients

def insert_patient(name: str, condition: str, email: str) -> str:
    with get_db_connection() as conn:
        patient_id = _insert_with_prefixed_id(
            conn, 'patients', 'patient',
            ['name', 'condition', 'email', 'is_active', 'created_at'],
            (name, condition, email, 1, now_ns())
        )
        conn.commit()
        logger.info(f"Created patient {patient_id}")
        return patient_id


def get_patient(patient_id: str) -> Optional[Patient]:
    with get_db_connection() as conn:
        row = conn.execute(f'SELECT {PATIENT_COLUMNS} FROM patients WHERE id = ?', (patient_id,)).fetchone()
        return _row_to_patient(row) if row else None


def find_patient_by_email(email: str) -> Optional[Patient]:
    with get_db_connection() as conn:
        row = conn.execute(
            f'SELECT {PATIENT_COLUMNS} FROM patients WHERE email = ? COLLATE NOCASE ORDER BY seq LIMIT 1',
            (email.strip(),)
        ).fetchone()
        return _row_to_patient(row) if row else None


def list_patients(assigned_doctor_id: Optional[str] = None, unassigned_only: bool = False) -> List[Patient]:
    sql = f'SELECT {PATIENT_COLUMNS} FROM patients'
    params: tuple = ()
    if unassigned_only:
        sql += ' WHERE assigned_doctor_id IS NULL AND is_active = 1'
    elif assigned_doctor_id is not None:
        sql += ' WHERE assigned_doctor_id = ?'
        params = (assigned_doctor_id,)
    sql += ' ORDER BY seq'

    with get_db_connection() as conn:
        return [_row_to_patient(row) for row in conn.execute(sql, params).fetchall()]


def set_patient_doctor(patient_id: str, doctor_id: Optional[str]) -> bool:
    with get_db_connection() as conn:
        cursor = conn.execute(
            'UPDATE patients SET assigned_doctor_id = ? WHERE id = ?',
            (doctor_id, patient_id)
        )
        conn.commit()
        return cursor.rowcount > 0


# Doctors

def insert_doctor(name: str, specialization: str) -> str:
    with get_db_connection() as conn:
        doctor_id = _insert_with_prefixed_id(
            conn, 'doctors', 'doctor',
            ['name', 'specialization', 'created_at'],
            (name, specialization, now_ns())
        )
        conn.commit()
        logger.info(f"Created doctor {doctor_id}")
        return doctor_id


def get_doctor(doctor_id: str) -> Optional[Doctor]:
    with get_db_connection() as conn:
        row = conn.execute(f'SELECT {DOCTOR_COLUMNS} FROM doctors WHERE id = ?', (doctor_id,)).fetchone()
        return _row_to_doctor(row) if row else None


def list_doctors() -> List[Doctor]:
    with get_db_connection() as conn:
        rows = conn.execute(f'SELECT {DOCTOR_COLUMNS} FROM doctors ORDER BY seq').fetchall()
        return [_row_to_doctor(row) for row in rows]


# Queries

def insert_query(patient_id: str, title: str, description: str,
                 ai_draft_response: Optional[str] = None) -> str:
    timestamp = now_ns()
    with get_db_connection() as conn:
        query_id = _insert_with_prefixed_id(
            conn, 'queries', 'query',
            ['patient_id', 'title', 'description', 'status', 'created_at', 'updated_at', 'ai_draft_response'],
            (patient_id, title, description, QueryStatus.PENDING.value, timestamp, timestamp, ai_draft_response)
        )
        conn.commit()
        logger.info(f"Created query {query_id} for patient {patient_id}")
        return query_id


def get_query(query_id: str) -> Optional[MedicalQuery]:
    with get_db_connection() as conn:
        row = conn.execute(f'SELECT {QUERY_COLUMNS} FROM queries WHERE id = ?', (query_id,)).fetchone()
        return _row_to_query(row) if row else None


def list_queries(patient_id: Optional[str] = None, doctor_id: Optional[str] = None,
                 status: Optional[QueryStatus] = None) -> List[MedicalQuery]:
    clauses = []
    params = []
    if patient_id is not None:
        clauses.append('patient_id = ?')
        params.append(patient_id)
    if doctor_id is not None:
        clauses.append('doctor_id = ?')
        params.append(doctor_id)
    if status is not None:
        clauses.append('status = ?')
        params.append(status.value)

    sql = f'SELECT {QUERY_COLUMNS} FROM queries'
    if clauses:
        sql += ' WHERE ' + ' AND '.join(clauses)
    sql += ' ORDER BY created_at, seq'

    with get_db_connection() as conn:
        return [_row_to_query(row) for row in conn.execute(sql, params).fetchall()]


def update_query(query_id: str, **fields: Any) -> bool:
    """
    Update columns of a query and bump its updated_at timestamp.

    Args:
        query_id: ID of the query
        **fields: Column names mapped to new values (status may be a QueryStatus)

    Returns:
        bool: True if a row was updated
    """
    allowed = {'doctor_id', 'status', 'ai_draft_response', 'response'}
    unknown = set(fields) - allowed
    if unknown:
        raise ValueError(f"Cannot update query columns: {', '.join(sorted(unknown))}")

    values = {key: (value.value if isinstance(value, QueryStatus) else value) for key, value in fields.items()}
    values['updated_at'] = now_ns()
    assignments = ', '.join(f'{key} = ?' for key in values)

    with get_db_connection() as conn:
        cursor = conn.execute(
            f'UPDATE queries SET {assignments} WHERE id = ?',
            (*values.values(), query_id)
        )
        conn.commit()
        is_updated = cursor.rowcount > 0
        if not is_updated:
            logger.warning(f"Query {query_id} not found for update")
        return is_updated


# Statistics

def get_counts() -> SystemStats:
    with get_db_connection() as conn:
        total_patients = conn.execute('SELECT COUNT(*) FROM patients').fetchone()[0]
        total_doctors = conn.execute('SELECT COUNT(*) FROM doctors').fetchone()[0]
        status_counts: Dict[str, int] = {
            row['status']: row['total']
            for row in conn.execute('SELECT status, COUNT(*) AS total FROM queries GROUP BY status')
        }

    completed = status_counts.get(QueryStatus.COMPLETED.value, 0)
    total_queries = sum(status_counts.values())
    return SystemStats(
        total_patients=total_patients,
        total_doctors=total_doctors,
        total_queries=total_queries,
        pending_queries=total_queries - completed,
        completed_queries=completed,
    )


def backup_database(backup_path: str = None) -> bool:
    """
    Create a backup of the database.

    Args:
        backup_path (str, optional): Path for the backup file

    Returns:
        bool: True if successful, False otherwise
    """
    if backup_path is None:
        timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
        backup_path = f"trustcare_backup_{timestamp}.db"

    try:
        source = sqlite3.connect(DB_PATH)
        backup = sqlite3.connect(backup_path)
        source.backup(backup)
        backup.close()
        source.close()

        logger.info(f"Database backup created successfully: {backup_path}")
        return True

    except sqlite3.Error as e:
        logger.error(f"Error creating database backup: {e}")
        return False
