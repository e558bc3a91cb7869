"""
Modele SQLAlchemy des items DataForSEO Labs Google keyword research.

Une ligne par (keyword, location_code, language_code). Les sous-objets
de l'item (keyword_info, serp_info, ...) sont aplatis en colonnes
prefixees; les listes volumineuses sont stockees en JSON.
"""
from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    Float,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
)

from api_cache.infrastructure.persistence.models.base import Base, utcnow


class KeywordResearchItem(Base):
    """Item keyword research aplati"""
    __tablename__ = "dataforseo_labs_google_keyword_research_items"

    id = Column(Integer, primary_key=True, autoincrement=True)

    # Provenance
    response_id = Column(Integer)
    task_id = Column(String(255))

    # Enveloppe de la tache
    se_type = Column(String(50))
    location_code = Column(Integer, nullable=False, default=0, server_default="0")
    language_code = Column(String(20), nullable=False, default="none", server_default="none")

    keyword = Column(String(255), nullable=False)

    # keyword_info
    keyword_info_se_type = Column(String(50))
    keyword_info_last_updated_time = Column(String(64))
    keyword_info_competition = Column(Float)
    keyword_info_competition_level = Column(String(50))
    keyword_info_cpc = Column(Float)
    keyword_info_search_volume = Column(Integer)
    keyword_info_low_top_of_page_bid = Column(Float)
    keyword_info_high_top_of_page_bid = Column(Float)
    keyword_info_categories = Column(Text)
    keyword_info_monthly_searches = Column(Text)
    keyword_info_search_volume_trend_monthly = Column(Integer)
    keyword_info_search_volume_trend_quarterly = Column(Integer)
    keyword_info_search_volume_trend_yearly = Column(Integer)

    # keyword_info_normalized_with_bing
    keyword_info_normalized_with_bing_last_updated_time = Column(String(64))
    keyword_info_normalized_with_bing_search_volume = Column(Integer)
    keyword_info_normalized_with_bing_is_normalized = Column(Boolean)
    keyword_info_normalized_with_bing_monthly_searches = Column(Text)

    # keyword_info_normalized_with_clickstream
    keyword_info_normalized_with_clickstream_last_updated_time = Column(String(64))
    keyword_info_normalized_with_clickstream_search_volume = Column(Integer)
    keyword_info_normalized_with_clickstream_is_normalized = Column(Boolean)
    keyword_info_normalized_with_clickstream_monthly_searches = Column(Text)

    # clickstream_keyword_info
    clickstream_keyword_info_search_volume = Column(Integer)
    clickstream_keyword_info_last_updated_time = Column(String(64))
    clickstream_keyword_info_gender_distribution_female = Column(Integer)
    clickstream_keyword_info_gender_distribution_male = Column(Integer)
    clickstream_keyword_info_age_distribution_18_24 = Column(Integer)
    clickstream_keyword_info_age_distribution_25_34 = Column(Integer)
    clickstream_keyword_info_age_distribution_35_44 = Column(Integer)
    clickstream_keyword_info_age_distribution_45_54 = Column(Integer)
    clickstream_keyword_info_age_distribution_55_64 = Column(Integer)
    clickstream_keyword_info_monthly_searches = Column(Text)

    # keyword_properties
    keyword_properties_se_type = Column(String(50))
    keyword_properties_core_keyword = Column(String(255))
    keyword_properties_synonym_clustering_algorithm = Column(String(100))
    keyword_properties_keyword_difficulty = Column(Integer)
    keyword_properties_detected_language = Column(String(20))
    keyword_properties_is_another_language = Column(Boolean)

    # serp_info
    serp_info_se_type = Column(String(50))
    serp_info_check_url = Column(Text)
    serp_info_serp_item_types = Column(Text)
    serp_info_se_results_count = Column(Integer)
    serp_info_last_updated_time = Column(String(64))
    serp_info_previous_updated_time = Column(String(64))

    # avg_backlinks_info
    avg_backlinks_info_se_type = Column(String(50))
    avg_backlinks_info_backlinks = Column(Float)
    avg_backlinks_info_dofollow = Column(Float)
    avg_backlinks_info_referring_pages = Column(Float)
    avg_backlinks_info_referring_domains = Column(Float)
    avg_backlinks_info_referring_main_domains = Column(Float)
    avg_backlinks_info_rank = Column(Float)
    avg_backlinks_info_main_domain_rank = Column(Float)
    avg_backlinks_info_last_updated_time = Column(String(64))

    # search_intent_info
    search_intent_info_se_type = Column(String(50))
    search_intent_info_main_intent = Column(String(50))
    search_intent_info_foreign_intent = Column(Text)
    search_intent_info_last_updated_time = Column(String(64))

    # Endpoint related_keywords
    related_keywords = Column(Text)

    # Endpoint bulk_keyword_difficulty
    keyword_difficulty = Column(Integer)

    # Endpoint search_intent
    keyword_intent_label = Column(String(50))
    keyword_intent_probability = Column(Float)
    secondary_keyword_intents_probability_informational = Column(Float)
    secondary_keyword_intents_probability_navigational = Column(Float)
    secondary_keyword_intents_probability_commercial = Column(Float)
    secondary_keyword_intents_probability_transactional = Column(Float)

    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow)

    __table_args__ = (
        UniqueConstraint(
            "keyword", "location_code", "language_code",
            name="uq_keyword_research_keyword_location_language",
        ),
        Index("idx_keyword_research_response_id", "response_id"),
        Index("idx_keyword_research_task_id", "task_id"),
    )

    def __repr__(self):
        return f"<KeywordResearchItem {self.keyword} ({self.location_code}/{self.language_code})>"
