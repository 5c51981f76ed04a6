import asyncio
import json

import pytest
from sqlalchemy.exc import IntegrityError

from database import models
from services import blueprint_extraction
from services.blueprint_importer import BlueprintImporter
from services.blueprint_extraction import (
    extract_json,
    import_blueprint_from_pdf,
    parse_extracted_blueprint,
    to_import_domains,
)
from services.errors import ExtractionError, NotFoundError, UnparsableExtractionError

AI_BLUEPRINT = {
    "domains": [
        {
            "domainNumber": "1.0",
            "name": "General Security Concepts",
            "percentage": 12,
            "objectives": [
                {
                    "objectiveNumber": "1.1",
                    "name": "Compare and contrast security controls",
                    "bullets": [
                        {"text": "Categories", "subBullets": [{"text": "Technical"}, {"text": ""}, {"text": "Managerial"}]},
                        {"text": "   "},
                        {"text": "Control types"},
                    ],
                }
            ],
        },
        {
            "domainNumber": 2,
            "name": "Threats",
            "percentage": 88,
            "objectives": [{"objectiveNumber": 2.1, "name": "Threat actors"}],
        },
    ]
}


@pytest.fixture
def fake_llm(monkeypatch):
    calls = []

    def install(response):
        async def fake_call(prompt, model=None):
            calls.append({"prompt": prompt, "model": model})
            if isinstance(response, Exception):
                raise response
            return response

        monkeypatch.setattr(blueprint_extraction, "_call_llm", fake_call)
        monkeypatch.setattr(blueprint_extraction, "extract_pdf_text", lambda pdf_bytes: "SY0-701 exam objectives")
        return calls

    return install


def test_extract_json_strips_fences_and_prose():
    raw = 'Here you go:\n```json\n{"domains": []}\n```\nThanks!'
    assert extract_json(raw) == {"domains": []}


def test_extract_json_repairs_trailing_commas():
    raw = '{"domains": [{"domainNumber": "1", "name": "A", "objectives": [],},]}'
    assert extract_json(raw)["domains"][0]["name"] == "A"


def test_extract_json_without_object_is_unparsable():
    with pytest.raises(UnparsableExtractionError):
        extract_json("I could not find any domains in that document.")


def test_parse_rejects_wrong_shape():
    with pytest.raises(UnparsableExtractionError):
        parse_extracted_blueprint({"domains": [{"name": "no number"}]})


def test_to_import_domains_maps_percentages_and_positions():
    domains = to_import_domains(parse_extracted_blueprint(AI_BLUEPRINT))

    assert [(d.name, d.weight, d.order) for d in domains] == [
        ("General Security Concepts", 0.12, 0),
        ("Threats", 0.88, 1),
    ]
    objective = domains[0].objectives[0]
    assert (objective.code, objective.order) == ("1.1", 0)
    assert [(b.text, b.order) for b in objective.bullets] == [("Categories", 0), ("Control types", 1)]
    assert [(s.text, s.order) for s in objective.bullets[0].sub_bullets] == [("Technical", 0), ("Managerial", 1)]
    assert domains[1].objectives[0].code == "2.1"


def test_to_import_domains_missing_percentage_is_zero_weight():
    data = {"domains": [{"domainNumber": "1", "name": "Only", "objectives": []}]}
    assert to_import_domains(parse_extracted_blueprint(data))[0].weight == 0


def test_to_import_domains_rejects_out_of_range_percentage():
    data = {"domains": [{"domainNumber": "1", "name": "Too big", "percentage": 140}]}
    with pytest.raises(UnparsableExtractionError):
        to_import_domains(parse_extracted_blueprint(data))


def test_import_from_pdf_unknown_certification(db):
    with pytest.raises(NotFoundError):
        asyncio.run(import_blueprint_from_pdf(db, 12345, b"%PDF-1.4"))


def test_extract_endpoint_imports_and_stores_raw_payload(client, db, certification, fake_llm):
    calls = fake_llm("```json\n" + json.dumps(AI_BLUEPRINT) + "\n```")

    response = client.post(
        f"/certifications/{certification.id}/blueprint/extract",
        files={"file": ("objectives.pdf", b"%PDF-1.4 fake", "application/pdf")},
        params={"model": "gpt-4o"},
    )

    assert response.status_code == 200
    assert response.json() == {
        "domains_created": 2,
        "objectives_created": 2,
        "bullets_created": 2,
        "sub_bullets_created": 2,
        "total_weight_percentage": 100.0,
        "weights_valid": True,
        "certification_deactivated": False,
    }
    assert calls[0]["model"] == "gpt-4o"
    assert "SY0-701 exam objectives" in calls[0]["prompt"]

    db.expire_all()
    stored = db.get(models.Certification, certification.id)
    assert stored.blueprint["domains"][0]["domainNumber"] == "1.0"


def test_extract_endpoint_llm_failure_is_502_and_keeps_blueprint(client, db, certification, sample_blueprint, fake_llm):
    client.post(f"/certifications/{certification.id}/blueprint/import", json={"domains": sample_blueprint})
    fake_llm(ExtractionError("LLM call failed: rate limited"))

    response = client.post(
        f"/certifications/{certification.id}/blueprint/extract",
        files={"file": ("objectives.pdf", b"%PDF-1.4 fake", "application/pdf")},
    )

    assert response.status_code == 502
    assert "LLM call failed" in response.json()["detail"]
    assert client.get(f"/certifications/{certification.id}/blueprint/weights").json()["total_percentage"] == 100.0


def test_extract_endpoint_garbage_response_is_422(client, certification, fake_llm):
    fake_llm("no json here")

    response = client.post(
        f"/certifications/{certification.id}/blueprint/extract",
        files={"file": ("objectives.pdf", b"%PDF-1.4 fake", "application/pdf")},
    )
    assert response.status_code == 422


def test_extract_endpoint_rejects_non_pdf_and_empty_uploads(client, certification):
    url = f"/certifications/{certification.id}/blueprint/extract"
    assert client.post(url, files={"file": ("notes.txt", b"hello", "text/plain")}).status_code == 400
    assert client.post(url, files={"file": ("empty.pdf", b"", "application/pdf")}).status_code == 400


def test_extract_endpoint_unknown_certification_is_404(client, fake_llm):
    fake_llm(json.dumps(AI_BLUEPRINT))
    response = client.post(
        "/certifications/9999/blueprint/extract",
        files={"file": ("objectives.pdf", b"%PDF-1.4 fake", "application/pdf")},
    )
    assert response.status_code == 404


AI_CERTIFICATION = {
    "certification": {
        "name": "CompTIA Security+",
        "code": "SY0-701",
        "description": "Baseline security skills.",
        "isScoredExam": True,
        "passingScore": 750,
        "maxScore": 900,
        "defaultStudyDuration": 60,
    },
    **AI_BLUEPRINT,
}


def upload_pdf(client, **params):
    return client.post(
        "/certifications/from-pdf",
        files={"file": ("sy0-701.pdf", b"%PDF-1.4 fake", "application/pdf")},
        params=params,
    )


def test_from_pdf_creates_certification_and_blueprint_together(client, db, fake_llm):
    fake_llm(json.dumps(AI_CERTIFICATION))

    response = upload_pdf(client)

    assert response.status_code == 201
    body = response.json()
    created = body["certification"]
    assert (created["name"], created["code"]) == ("CompTIA Security+", "SY0-701")
    assert (created["passing_score"], created["max_score"]) == (750, 900)
    assert created["default_study_duration"] == 60
    assert created["is_active"] is True
    assert created["domain_count"] == 2
    assert body["import_result"]["objectives_created"] == 2
    assert body["import_result"]["sub_bullets_created"] == 2

    blueprint = client.get(f"/certifications/{created['id']}/blueprint").json()
    assert [d["name"] for d in blueprint["domains"]] == ["General Security Concepts", "Threats"]
    stored = db.get(models.Certification, created["id"])
    assert stored.blueprint["certification"]["code"] == "SY0-701"


def test_from_pdf_failed_import_leaves_no_certification(client, fake_llm, monkeypatch):
    fake_llm(json.dumps(AI_CERTIFICATION))
    original = BlueprintImporter._create_level

    def failing_create_level(self, certification_id, level, parent_ids, groups):
        if level.label == "bullets":
            raise IntegrityError("INSERT INTO bullets", {}, Exception("FOREIGN KEY constraint failed"))
        return original(self, certification_id, level, parent_ids, groups)

    monkeypatch.setattr(BlueprintImporter, "_create_level", failing_create_level)

    response = upload_pdf(client)

    assert response.status_code == 409
    assert client.get("/certifications/").json() == []


def test_from_pdf_duplicate_code_is_400(client, certification, fake_llm):
    duplicate = {**AI_CERTIFICATION, "certification": {**AI_CERTIFICATION["certification"], "code": certification.code}}
    fake_llm(json.dumps(duplicate))

    response = upload_pdf(client)

    assert response.status_code == 400
    assert "already exists" in response.json()["detail"]
    assert len(client.get("/certifications/").json()) == 1


def test_from_pdf_unscored_exam_drops_scores_and_defaults_duration(client, fake_llm):
    details = {"name": "Cloud Essentials", "code": "CLO-002", "isScoredExam": False, "passingScore": 0}
    calls = fake_llm(json.dumps({"certification": details, **AI_BLUEPRINT}))

    response = upload_pdf(client, model="gpt-4o")

    assert response.status_code == 201
    created = response.json()["certification"]
    assert created["passing_score"] is None
    assert created["max_score"] is None
    assert created["default_study_duration"] == 45
    assert calls[0]["model"] == "gpt-4o"
    assert "certification metadata" in calls[0]["prompt"].lower()


def test_from_pdf_scored_exam_without_scores_is_422(client, fake_llm):
    details = {"name": "Mystery Exam", "code": "MYS-1", "isScoredExam": True}
    fake_llm(json.dumps({"certification": details, **AI_BLUEPRINT}))

    response = upload_pdf(client)

    assert response.status_code == 422
    assert client.get("/certifications/").json() == []


def test_from_pdf_missing_certification_header_is_422(client, fake_llm):
    fake_llm(json.dumps(AI_BLUEPRINT))
    assert upload_pdf(client).status_code == 422
