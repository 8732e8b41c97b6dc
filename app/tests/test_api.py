import io
import csv
from fastapi import FastAPI
from fastapi.testclient import TestClient


def _import(name_options):
    for name in name_options:
        try:
            mod = __import__(name, fromlist=["*"])
            return mod
        except Exception:
            continue
    raise ImportError(f"None of the modules could be imported: {name_options}")


def make_app() -> FastAPI:
    factory = _import(["app.factory"])
    return factory.create_app()


def make_csv(rows=120):
    header = ["First Name", "Last Name", "Email Address", "Job Title"]
    out = io.StringIO()
    w = csv.writer(out, lineterminator="\n")
    w.writerow(header)
    for i in range(1, rows + 1):
        w.writerow([f"Person{i}" if i % 10 else "", f"Family {i}", f"p{i}@example.com", "Engineer, Senior"])
    return out.getvalue()


def upload(client: TestClient, path: str, content: str, filename="contacts.csv", **form):
    files = {"file": (filename, content.encode("utf-8"), "text/csv")}
    return client.post(path, files=files, data=form or None)


def test_preview_then_commit_import():
    client = TestClient(make_app())

    r = upload(client, "/api/import/preview", make_csv(123))
    assert r.status_code == 200, r.text
    data = r.json()
    assert data["headers"] == ["First Name", "Last Name", "Email Address", "Job Title"]
    assert data["total_rows"] == 123
    assert len(data["preview"]) == 100
    assert data["preview"][0] == ["Person1", "Family 1", "p1@example.com", "Engineer, Senior"]
    assert data["field_mapping"] == {
        "First Name": "first_name",
        "Last Name": "last_name",
        "Email Address": "email",
        "Job Title": "job_title",
    }

    mapping = dict(data["field_mapping"])
    del mapping["Job Title"]
    r = client.post("/api/import/commit", json={
        "file_id": data["file_id"],
        "entity_type": "contact",
        "field_mapping": mapping,
    })
    assert r.status_code == 200, r.text
    result = r.json()
    assert result["status"] == "completed"
    assert result["processed_rows"] == 111
    assert result["error_rows"] == 12
    assert result["errors"][0] == {"row": 11, "error": "Missing first_name"}

    contacts = client.get("/api/contacts").json()
    assert len(contacts) == 111
    assert all(c["job_title"] is None for c in contacts)

    # staged upload is consumed by the commit
    r = client.post("/api/import/commit", json={"file_id": data["file_id"], "entity_type": "contact"})
    assert r.status_code == 404


def test_one_shot_import_and_export():
    client = TestClient(make_app())

    r = upload(client, "/api/import", "Deal Name,Amount\nRenewal,2500\nUpsell,\n", filename="deals.csv",
               entity_type="deal")
    assert r.status_code == 200, r.text
    assert r.json()["processed_rows"] == 2

    r = client.get("/api/export", params={"entity_type": "deal"})
    assert r.status_code == 200
    assert r.headers["content-type"].startswith("text/csv")
    assert "deals-export-" in r.headers["content-disposition"]
    lines = r.text.split("\n")
    assert lines[0].split(",")[:3] == ["name", "value", "currency"]
    assert {line.split(",")[0] for line in lines[1:]} == {"Renewal", "Upsell"}

    assert client.get("/api/export", params={"entity_type": "deal", "format": "xlsx"}).status_code == 400
    assert client.get("/api/export", params={"entity_type": "referral"}).status_code == 400


def test_import_rejects_bad_uploads():
    client = TestClient(make_app())
    assert upload(client, "/api/import", "a,b\n1,2\n", filename="data.txt").status_code == 400
    assert upload(client, "/api/import", "\n\n").status_code == 400
    assert upload(client, "/api/import", "first_name\n").status_code == 400
    r = upload(client, "/api/import", "name\nx\n", entity_type="referral")
    assert r.status_code == 400
    assert "Unsupported entity type" in r.json()["detail"]


def test_import_template_and_fields():
    client = TestClient(make_app())
    r = client.get("/api/import/template", params={"entity_type": "company"})
    assert r.status_code == 200
    assert r.text.startswith("name,industry,website")

    fields = client.get("/api/import/fields").json()
    assert fields["email"] == ["email", "email address", "e-mail"]


def test_templates_and_send():
    client = TestClient(make_app())

    company = client.post("/api/companies", json={"name": "Analytical Engines"}).json()
    contact = client.post("/api/contacts", json={
        "first_name": "Ada",
        "last_name": "Lovelace",
        "email": "ada@example.com",
        "company_id": company["id"],
    }).json()
    assert contact["company_name"] == "Analytical Engines"

    r = client.post("/api/templates", json={
        "name": "Intro",
        "subject": "Hi {{first_name}}",
        "html_content": "<p>{{full_name}} of {{company_name}}, {{referrer}}</p>",
    })
    assert r.status_code == 201
    template = r.json()
    assert template["variables"] == ["company_name", "first_name", "full_name", "referrer"]

    r = client.post("/api/automations/send", json={
        "contact_id": contact["id"],
        "template_id": template["id"],
        "org_name": "Acme",
    })
    assert r.status_code == 200, r.text
    log = r.json()
    assert log["to_email"] == "ada@example.com"
    assert log["subject"] == "Hi Ada"
    assert log["html"] == "<p>Ada Lovelace of Analytical Engines, {{referrer}}</p>"
    assert log["from_address"].startswith("Acme <")
    assert log["status"] == "queued"

    no_email = client.post("/api/contacts", json={"first_name": "Grace"}).json()
    r = client.post("/api/automations/send", json={"contact_id": no_email["id"], "template_id": template["id"]})
    assert r.status_code == 400
    r = client.post("/api/automations/send", json={"contact_id": "missing", "template_id": template["id"]})
    assert r.status_code == 404


def test_template_preview():
    client = TestClient(make_app())
    r = client.post("/api/templates/preview", json={
        "subject": "{{first_name}}",
        "html_content": "Hi {{first_name}}, from {{company_name}}",
        "variables": {"first_name": "Ada"},
    })
    assert r.status_code == 200
    assert r.json() == {"subject": "Ada", "html": "Hi Ada, from {{company_name}}", "text": None}

    labels = client.get("/api/templates/variables").json()
    assert [v["key"] for v in labels] == [
        "first_name", "last_name", "full_name", "email", "company_name", "job_title",
    ]
