#!/usr/bin/env python3
"""
Ingestion des reponses DataForSEO Labs keyword research en cache.

Vide l'arriere des reponses non traitees par lots, jusqu'a ce qu'un lot
ne selectionne plus aucune reponse.

Usage:
    python scripts/process_keyword_research.py [--batch-size N] [--reset] [--clear]

Options:
    --batch-size N   Nombre de reponses par lot (defaut: configuration)
    --reset          Remet a zero processed_at avant traitement
    --clear          Vide la table des items avant traitement
"""

import argparse
import sys
from pathlib import Path

# Ajouter le dossier parent au path
sys.path.insert(0, str(Path(__file__).parent.parent))

from dotenv import load_dotenv
load_dotenv(Path(__file__).parent.parent / ".env")

from api_cache.infrastructure.config import get_settings
from api_cache.infrastructure.container import get_container
from api_cache.infrastructure.logging import configure_logging


def main():
    parser = argparse.ArgumentParser(
        description="Ingere les reponses keyword research du cache DataForSEO"
    )
    parser.add_argument(
        "--batch-size",
        type=int,
        default=None,
        help="Nombre de reponses par lot"
    )
    parser.add_argument(
        "--reset",
        action="store_true",
        help="Remet a zero l'etat de traitement des reponses"
    )
    parser.add_argument(
        "--clear",
        action="store_true",
        help="Vide la table des items avant traitement"
    )
    args = parser.parse_args()

    settings = get_settings()
    configure_logging(json_logs=settings.json_logs, log_level=settings.log_level)

    print("🔑 INGESTION KEYWORD RESEARCH")
    print("=" * 60)

    try:
        container = get_container(settings)
        processor = container.keyword_research_processor
        print(f"✅ Table des reponses: {processor.get_responses_table_name()}")

        if args.clear:
            cleared = processor.clear_processed_tables(with_count=True)
            print(f"🗑️ {cleared['items_deleted']} items supprimes")

        if args.reset:
            reset = processor.reset_processed()
            print(f"🔄 {reset} reponses reinitialisees")

        batch_size = args.batch_size or settings.keyword_research.batch_size
        stats = processor.process_responses_all(batch_size=batch_size)

        print("\n" + "=" * 60)
        print("📊 RESUME")
        print("=" * 60)
        print(f"Lots traites:       {stats['batches_processed']}")
        print(f"Reponses traitees:  {stats['processed_responses']}")
        print(f"Items:              {stats['total_items']}")
        print(f"  inseres:          {stats['items_inserted']}")
        print(f"  mis a jour:       {stats['items_updated']}")
        print(f"  ignores:          {stats['items_skipped']}")
        print(f"Erreurs:            {stats['errors']}")

    except Exception as e:
        print(f"❌ Erreur: {e}")
        import traceback
        traceback.print_exc()
        sys.exit(1)


if __name__ == "__main__":
    main()
