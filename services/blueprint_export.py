"""
Blueprint export
Renders a certification's blueprint as a JSON document or a flat CSV sheet.
"""

import csv
import io
import json

from database.models import Certification

CSV_HEADER = [
    "Domain",
    "Weight",
    "Objective Code",
    "Objective Description",
    "Difficulty",
    "Bullet",
    "Sub-Bullet",
]


def blueprint_to_dict(certification: Certification) -> dict:
    """Nested blueprint in the same shape the importer accepts, plus the certification header."""
    return {
        "certification_name": certification.name,
        "certification_code": certification.code,
        "domains": [
            {
                "name": domain.name,
                "weight": domain.weight,
                "order": domain.order,
                "objectives": [
                    {
                        "code": objective.code,
                        "description": objective.description,
                        "difficulty": objective.difficulty,
                        "order": objective.order,
                        "bullets": [
                            {
                                "text": bullet.text,
                                "order": bullet.order,
                                "sub_bullets": [
                                    {"text": sub.text, "order": sub.order}
                                    for sub in bullet.sub_bullets
                                ],
                            }
                            for bullet in objective.bullets
                        ],
                    }
                    for objective in domain.objectives
                ],
            }
            for domain in certification.domains
        ],
    }


def export_blueprint_json(certification: Certification) -> str:
    return json.dumps(blueprint_to_dict(certification), indent=2, ensure_ascii=False)


def _weight_label(weight: float) -> str:
    return f"{int(weight * 100 + 0.5)}%"


def export_blueprint_csv(certification: Certification) -> str:
    """
    One row per sub-bullet; a bullet without sub-bullets, an objective without
    bullets and a domain without objectives each still get a row of their own.
    """
    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n")
    writer.writerow(CSV_HEADER)

    for domain in certification.domains:
        weight = _weight_label(domain.weight)
        if not domain.objectives:
            writer.writerow([domain.name, weight, "", "", "", "", ""])
            continue

        for objective in domain.objectives:
            prefix = [domain.name, weight, objective.code, objective.description, objective.difficulty]
            if not objective.bullets:
                writer.writerow(prefix + ["", ""])
                continue

            for bullet in objective.bullets:
                if not bullet.sub_bullets:
                    writer.writerow(prefix + [bullet.text, ""])
                    continue
                for sub in bullet.sub_bullets:
                    writer.writerow(prefix + [bullet.text, sub.text])

    return buffer.getvalue()


def export_filename(certification: Certification, fmt: str) -> str:
    return f"{certification.code}_blueprint.{fmt}"
