"""Elasticsearch index management and catalog search service."""

import logging
from typing import Optional

from elasticsearch import Elasticsearch, NotFoundError as ESNotFoundError

from app.config import get_settings
from app.models import Professor, Subject

logger = logging.getLogger(__name__)

_client: Optional[Elasticsearch] = None

_NAME_ANALYSIS = {
    "analyzer": {
        "folded_name": {
            "type": "custom",
            "tokenizer": "standard",
            "filter": ["lowercase", "asciifolding"],
        }
    }
}

PROFESSOR_MAPPING = {
    "mappings": {
        "properties": {
            "professor_id": {"type": "integer"},
            "name": {
                "type": "text",
                "analyzer": "folded_name",
                "fields": {"keyword": {"type": "keyword"}},
            },
            "department": {"type": "text", "analyzer": "folded_name"},
            "faculty_id": {"type": "integer"},
            "subject_names": {"type": "text", "analyzer": "folded_name"},
            "average_general": {"type": "float"},
            "total_ratings": {"type": "integer"},
        }
    },
    "settings": {"number_of_shards": 1, "number_of_replicas": 0, "analysis": _NAME_ANALYSIS},
}

SUBJECT_MAPPING = {
    "mappings": {
        "properties": {
            "subject_id": {"type": "integer"},
            "name": {
                "type": "text",
                "analyzer": "folded_name",
                "fields": {"keyword": {"type": "keyword"}},
            },
            "faculty_id": {"type": "integer"},
            "credits": {"type": "integer"},
            "description": {"type": "text", "analyzer": "standard"},
        }
    },
    "settings": {"number_of_shards": 1, "number_of_replicas": 0, "analysis": _NAME_ANALYSIS},
}


def get_es() -> Elasticsearch:
    global _client
    if _client is None:
        settings = get_settings()
        _client = Elasticsearch(settings.elasticsearch_url)
    return _client


def ensure_indexes():
    """Create Elasticsearch indexes if they do not exist."""
    settings = get_settings()
    es = get_es()
    for idx, mapping in [
        (settings.es_index_professors, PROFESSOR_MAPPING),
        (settings.es_index_subjects, SUBJECT_MAPPING),
    ]:
        if not es.indices.exists(index=idx):
            es.indices.create(index=idx, body=mapping)
            logger.info("Created ES index: %s", idx)
        else:
            logger.info("ES index already exists: %s", idx)


# ── Documents ────────────────────────────────────────────────────────────────

def professor_document(professor: Professor) -> dict:
    return {
        "id": professor.id,
        "professor_id": professor.id,
        "name": professor.name,
        "department": professor.department,
        "faculty_id": professor.faculty_id,
        "subject_names": [s.name for s in professor.subjects],
        "average_general": professor.average_general or 0.0,
        "total_ratings": professor.total_ratings or 0,
    }


def subject_document(subject: Subject) -> dict:
    return {
        "id": subject.id,
        "subject_id": subject.id,
        "name": subject.name,
        "faculty_id": subject.faculty_id,
        "credits": subject.credits,
        "description": subject.description,
    }


def index_professor(doc: dict):
    settings = get_settings()
    get_es().index(index=settings.es_index_professors, id=doc["professor_id"], document=doc)


def index_subject(doc: dict):
    settings = get_settings()
    get_es().index(index=settings.es_index_subjects, id=doc["subject_id"], document=doc)


def delete_document(index_name: str, doc_id: int):
    """Remove a document; a document that is already gone is not an error."""
    try:
        get_es().delete(index=index_name, id=doc_id)
    except ESNotFoundError:
        logger.debug("ES document %s/%s already absent", index_name, doc_id)


# ── Search ───────────────────────────────────────────────────────────────────

def _run_search(index_name: str, must: list, filters: list, size: int, offset: int, sort=None) -> dict:
    body = {
        "query": {"bool": {"must": must, "filter": filters}},
        "from": offset,
        "size": size,
    }
    if sort:
        body["sort"] = sort

    resp = get_es().search(index=index_name, body=body)

    return {
        "total": resp["hits"]["total"]["value"],
        "took_ms": resp["took"],
        "hits": [h["_source"] for h in resp["hits"]["hits"]],
    }


def search_professors(
    query: str,
    faculty_id: Optional[int] = None,
    min_rating: Optional[float] = None,
    size: int = 25,
    offset: int = 0,
) -> dict:
    """Fuzzy search over professor names, departments and subjects taught.

    Returns dict with ``total``, ``hits`` (list of source docs), and ``took_ms``.
    """
    settings = get_settings()

    if query:
        must = [{
            "multi_match": {
                "query": query,
                "fields": ["name^3", "subject_names", "department"],
                "fuzziness": "AUTO",
            }
        }]
    else:
        must = [{"match_all": {}}]

    filters = []
    if faculty_id is not None:
        filters.append({"term": {"faculty_id": faculty_id}})
    if min_rating is not None:
        filters.append({"range": {"average_general": {"gte": min_rating}}})

    return _run_search(
        settings.es_index_professors, must, filters, size, offset,
        sort=[{"_score": "desc"}, {"average_general": "desc"}],
    )


def search_subjects(
    query: str,
    faculty_id: Optional[int] = None,
    size: int = 25,
    offset: int = 0,
) -> dict:
    """Fuzzy search over subject names and descriptions."""
    settings = get_settings()

    if query:
        must = [{
            "multi_match": {
                "query": query,
                "fields": ["name^3", "description"],
                "fuzziness": "AUTO",
            }
        }]
    else:
        must = [{"match_all": {}}]

    filters = []
    if faculty_id is not None:
        filters.append({"term": {"faculty_id": faculty_id}})

    return _run_search(settings.es_index_subjects, must, filters, size, offset)
