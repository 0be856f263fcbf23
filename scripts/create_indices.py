import logging

from elasticsearch import Elasticsearch

from tripsearch.core.config import settings

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

TEXT_SETTINGS = {
    "number_of_shards": 1,
    "number_of_replicas": 0,
    "analysis": {
        "analyzer": {
            "content_analyzer": {
                "type": "custom",
                "tokenizer": "standard",
                "filter": ["lowercase", "asciifolding", "stop", "snowball"],
            }
        }
    },
}

ACTIVITY_MAPPINGS = {
    "properties": {
        "id": {"type": "keyword"},
        "title": {
            "type": "text",
            "analyzer": "content_analyzer",
            "fields": {"keyword": {"type": "keyword"}},
        },
        "description": {"type": "text", "analyzer": "content_analyzer"},
        "activity_type": {"type": "keyword"},
        "difficulty_level": {"type": "keyword"},
        "duration_hours": {"type": "float"},
        "distance_km": {"type": "float"},
        "elevation_gain_m": {"type": "integer"},
        "location": {"type": "geo_point"},
        "route": {"type": "geo_shape"},
        "water_features": {"type": "keyword"},
        "terrain_types": {"type": "keyword"},
        "best_seasons": {"type": "keyword"},
        "city": {"type": "keyword"},
        "state": {"type": "keyword"},
        "country": {"type": "keyword"},
        "region": {"type": "keyword"},
        "location_name": {"type": "text"},
        "visibility": {"type": "keyword"},
        "owner_id": {"type": "keyword"},
        "tags": {"type": "keyword"},
        "average_rating": {"type": "float"},
        "completion_count": {"type": "integer"},
        "created_at": {"type": "date"},
        "updated_at": {"type": "date"},
    }
}

PLACE_MAPPINGS = {
    "properties": {
        "id": {"type": "keyword"},
        "name": {
            "type": "text",
            "analyzer": "content_analyzer",
            "fields": {"keyword": {"type": "keyword"}},
        },
        "description": {"type": "text", "analyzer": "content_analyzer"},
        "type": {"type": "keyword"},
        "location": {"type": "geo_point"},
        "category": {"type": "keyword"},
        "tags": {"type": "keyword"},
        "city": {"type": "keyword"},
        "state": {"type": "keyword"},
        "country": {"type": "keyword"},
        "region": {"type": "keyword"},
        "location_name": {"type": "text"},
        "visibility": {"type": "keyword"},
        "owner_id": {"type": "keyword"},
        "average_rating": {"type": "float"},
        "created_at": {"type": "date"},
        "updated_at": {"type": "date"},
    }
}

ANALYTICS_MAPPINGS = {
    "properties": {
        "query": {"type": "text"},
        "interpreted_type": {"type": "keyword"},
        "filters": {"type": "object", "enabled": False},
        "results_count": {"type": "integer"},
        "user_id": {"type": "keyword"},
        "session_id": {"type": "keyword"},
        "confidence": {"type": "float"},
        "took_ms": {"type": "integer"},
        "degraded": {"type": "boolean"},
        "timestamp": {"type": "date"},
    }
}


def create_index(es: Elasticsearch, name: str, mappings: dict, index_settings: dict = None):
    if es.indices.exists(index=name):
        logger.info(f"Index {name} already exists")
        return
    es.indices.create(index=name, mappings=mappings, settings=index_settings)
    logger.info(f"Created index {name}")


def main():
    es = Elasticsearch(settings.ES_HOST)
    create_index(es, settings.ES_ACTIVITY_INDEX, ACTIVITY_MAPPINGS, TEXT_SETTINGS)
    create_index(es, settings.ES_PLACE_INDEX, PLACE_MAPPINGS, TEXT_SETTINGS)
    create_index(
        es,
        settings.ES_ANALYTICS_INDEX,
        ANALYTICS_MAPPINGS,
        {"number_of_shards": 1, "number_of_replicas": 0},
    )


if __name__ == "__main__":
    main()
