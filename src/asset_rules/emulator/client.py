"""REST client for one identity against the Firestore emulator."""

import base64
import json
import logging
import re
import time
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

import requests

from .codec import encode_fields, encode_value, decode_fields
from .errors import EmulatorError, EmulatorUnavailableError, PermissionDeniedError


logger = logging.getLogger(__name__)

OWNER_TOKEN = "owner"

QUERY_OPERATORS = {
    '==': 'EQUAL',
    '!=': 'NOT_EQUAL',
    '<': 'LESS_THAN',
    '<=': 'LESS_THAN_OR_EQUAL',
    '>': 'GREATER_THAN',
    '>=': 'GREATER_THAN_OR_EQUAL',
    'in': 'IN',
    'array-contains': 'ARRAY_CONTAINS',
}

_SIMPLE_FIELD = re.compile(r'^[A-Za-z_][A-Za-z_0-9]*$')


def _b64url(data: Dict[str, Any]) -> str:
    raw = json.dumps(data, separators=(',', ':')).encode('utf-8')
    return base64.urlsafe_b64encode(raw).decode('ascii').rstrip('=')


def make_unsigned_token(project_id: str, uid: str, claims: Optional[Dict[str, Any]] = None) -> str:
    """Build the unsigned ID token the emulator accepts for ``uid``"""
    now = int(time.time())
    payload = {
        'iss': f"https://securetoken.google.com/{project_id}",
        'aud': project_id,
        'iat': now,
        'exp': now + 3600,
        'auth_time': now,
        'sub': uid,
        'user_id': uid,
        'firebase': {'sign_in_provider': 'custom', 'identities': {}},
    }
    payload.update(claims or {})
    header = {'alg': 'none', 'kid': 'fakekid', 'typ': 'JWT'}
    return f"{_b64url(header)}.{_b64url(payload)}."


def _field_path(name: str) -> str:
    if _SIMPLE_FIELD.match(name):
        return name
    return '`' + name.replace('\\', '\\\\').replace('`', '\\`') + '`'


def _check_path(path: str, expect_document: bool) -> str:
    path = path.strip('/')
    segments = [s for s in path.split('/') if s]
    if not segments or len(segments) != len(path.split('/')):
        raise ValueError(f"Invalid path: '{path}'")
    if expect_document and len(segments) % 2 != 0:
        raise ValueError(f"Not a document path: '{path}'")
    if not expect_document and len(segments) % 2 != 1:
        raise ValueError(f"Not a collection path: '{path}'")
    return path


@dataclass
class DocumentSnapshot:
    """A document read back from the emulator"""
    path: str
    data: Dict[str, Any]
    create_time: Optional[str] = None
    update_time: Optional[str] = None

    @property
    def id(self) -> str:
        return self.path.rsplit('/', 1)[-1]

    @classmethod
    def from_resource(cls, resource: Dict[str, Any]) -> 'DocumentSnapshot':
        name = resource.get('name', '')
        path = name.split('/documents/', 1)[-1]
        return cls(
            path=path,
            data=decode_fields(resource.get('fields', {})),
            create_time=resource.get('createTime'),
            update_time=resource.get('updateTime'),
        )


class FirestoreContext:
    """Issues document requests to the emulator as one identity.

    ``token`` is sent as a bearer token; None means an unauthenticated caller.
    """

    def __init__(self, session: requests.Session, base_url: str, project_id: str,
                 token: Optional[str] = None, timeout: float = 30.0, database: str = "(default)"):
        self.session = session
        self.base_url = base_url.rstrip('/')
        self.project_id = project_id
        self.token = token
        self.timeout = timeout
        self.database = database

    @property
    def documents_url(self) -> str:
        return f"{self.base_url}/v1/projects/{self.project_id}/databases/{self.database}/documents"

    def _headers(self) -> Dict[str, str]:
        headers = {'Content-Type': 'application/json'}
        if self.token:
            headers['Authorization'] = f"Bearer {self.token}"
        return headers

    def _request(self, method: str, url: str, **kwargs) -> requests.Response:
        try:
            response = self.session.request(
                method, url, headers=self._headers(), timeout=self.timeout, **kwargs
            )
        except (requests.ConnectionError, requests.Timeout) as e:
            raise EmulatorUnavailableError(f"Firestore emulator not reachable at {self.base_url}: {e}")

        logger.debug(f"{method} {url} -> {response.status_code}")
        return response

    @staticmethod
    def raise_for_error(response: requests.Response) -> None:
        """Translate an error response into the matching exception"""
        if response.ok:
            return
        try:
            error = response.json().get('error', {})
        except ValueError:
            error = {}
        if not isinstance(error, dict):
            error = {}
        status = error.get('status')
        message = error.get('message') or response.text or response.reason
        if response.status_code == 403 or status == 'PERMISSION_DENIED':
            raise PermissionDeniedError(message, response.status_code, status or 'PERMISSION_DENIED', error)
        raise EmulatorError(message, response.status_code, status, error)

    def get_doc(self, path: str) -> Optional[DocumentSnapshot]:
        """Read a document. Returns None when it does not exist but reading is allowed."""
        path = _check_path(path, expect_document=True)
        response = self._request('GET', f"{self.documents_url}/{path}")
        if response.status_code == 404:
            return None
        self.raise_for_error(response)
        return DocumentSnapshot.from_resource(response.json())

    def set_doc(self, path: str, data: Dict[str, Any]) -> DocumentSnapshot:
        """Create or fully overwrite a document"""
        path = _check_path(path, expect_document=True)
        response = self._request(
            'PATCH', f"{self.documents_url}/{path}", json={'fields': encode_fields(data)}
        )
        self.raise_for_error(response)
        return DocumentSnapshot.from_resource(response.json())

    def add_doc(self, collection_path: str, data: Dict[str, Any]) -> DocumentSnapshot:
        """Create a document with a generated id"""
        collection_path = _check_path(collection_path, expect_document=False)
        response = self._request(
            'POST', f"{self.documents_url}/{collection_path}", json={'fields': encode_fields(data)}
        )
        self.raise_for_error(response)
        return DocumentSnapshot.from_resource(response.json())

    def update_doc(self, path: str, data: Dict[str, Any]) -> DocumentSnapshot:
        """Update the given fields of an existing document"""
        path = _check_path(path, expect_document=True)
        params = [('updateMask.fieldPaths', _field_path(key)) for key in data]
        params.append(('currentDocument.exists', 'true'))
        response = self._request(
            'PATCH', f"{self.documents_url}/{path}",
            params=params, json={'fields': encode_fields(data)}
        )
        self.raise_for_error(response)
        return DocumentSnapshot.from_resource(response.json())

    def delete_doc(self, path: str) -> None:
        path = _check_path(path, expect_document=True)
        response = self._request('DELETE', f"{self.documents_url}/{path}")
        self.raise_for_error(response)

    def list_docs(self, collection_path: str, page_size: int = 100) -> List[DocumentSnapshot]:
        """List every document of a collection, following page tokens"""
        collection_path = _check_path(collection_path, expect_document=False)
        documents: List[DocumentSnapshot] = []
        params: Dict[str, Any] = {'pageSize': page_size}
        while True:
            response = self._request('GET', f"{self.documents_url}/{collection_path}", params=params)
            self.raise_for_error(response)
            body = response.json()
            documents.extend(DocumentSnapshot.from_resource(d) for d in body.get('documents', []))
            token = body.get('nextPageToken')
            if not token:
                return documents
            params['pageToken'] = token

    def query(self, collection_path: str, field: str, op: str, value: Any) -> List[DocumentSnapshot]:
        """Run a structured query with a single field filter on one collection"""
        collection_path = _check_path(collection_path, expect_document=False)
        if op not in QUERY_OPERATORS:
            raise ValueError(f"Unsupported query operator: '{op}'")

        parent, _, collection_id = collection_path.rpartition('/')
        url = f"{self.documents_url}/{parent}:runQuery" if parent else f"{self.documents_url}:runQuery"
        body = {
            'structuredQuery': {
                'from': [{'collectionId': collection_id}],
                'where': {
                    'fieldFilter': {
                        'field': {'fieldPath': _field_path(field)},
                        'op': QUERY_OPERATORS[op],
                        'value': encode_value(value),
                    }
                },
            }
        }
        response = self._request('POST', url, json=body)
        self.raise_for_error(response)
        return [
            DocumentSnapshot.from_resource(item['document'])
            for item in response.json()
            if isinstance(item, dict) and 'document' in item
        ]
