#!/usr/bin/env python3
"""
Conversion de la table de cache d'un client entre variantes simple et compressee.

Usage:
    python scripts/convert_responses_table.py CLIENT [--decompress] [--batch-size N]
        [--overwrite] [--copy-processing-state] [--validate]

Options:
    --decompress              Table compressee -> table simple (defaut: l'inverse)
    --batch-size N            Lignes par lot (defaut: 100)
    --overwrite               Remplace les cles deja presentes dans la cible
    --copy-processing-state   Conserve processed_at / processed_status
    --validate                Verifie les payloads apres conversion
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
from api_cache.infrastructure.persistence.repositories import ResponsesTableConverter


def main():
    parser = argparse.ArgumentParser(
        description="Copie une table de cache vers sa variante compressee (ou simple)"
    )
    parser.add_argument("client", help="Nom du client API")
    parser.add_argument(
        "--decompress",
        action="store_true",
        help="Convertit la table compressee vers la table simple"
    )
    parser.add_argument("--batch-size", type=int, default=100, help="Lignes par lot")
    parser.add_argument(
        "--overwrite",
        action="store_true",
        help="Remplace les cles deja presentes dans la cible"
    )
    parser.add_argument(
        "--copy-processing-state",
        action="store_true",
        help="Conserve l'etat de traitement des reponses"
    )
    parser.add_argument(
        "--validate",
        action="store_true",
        help="Verifie les payloads apres conversion"
    )
    args = parser.parse_args()

    settings = get_settings()
    configure_logging(json_logs=settings.json_logs, log_level=settings.log_level)

    print("🗜️ CONVERSION TABLE DE CACHE")
    print("=" * 60)

    try:
        container = get_container(settings)
        converter = ResponsesTableConverter(
            container.cache_repository,
            args.client,
            compress=not args.decompress,
            batch_size=args.batch_size,
            overwrite=args.overwrite,
            copy_processing_state=args.copy_processing_state,
        )
        print(f"✅ Source: {converter.source.name} ({converter.count_source_rows()} lignes)")
        print(f"✅ Cible:  {converter.target.name} ({converter.count_target_rows()} lignes)")

        stats = converter.convert_all()

        print("\n" + "=" * 60)
        print("📊 RESUME")
        print("=" * 60)
        print(f"Lignes lues:     {stats['total_count']}")
        print(f"Copiees:         {stats['processed_count']}")
        print(f"Ignorees:        {stats['skipped_count']}")
        print(f"Erreurs:         {stats['error_count']}")

        if args.validate:
            validation = converter.validate_all()
            print(f"Validees:        {validation['validated_count']}")
            print(f"Differences:     {validation['mismatch_count']}")
            print(f"Erreurs valid.:  {validation['error_count']}")

    except Exception as e:
        print(f"❌ Erreur: {e}")
        import traceback
        traceback.print_exc()
        sys.exit(1)


if __name__ == "__main__":
    main()
