def test_create_candidate_returns_201(client, candidate_payload, email_service):
    response = client.post("/api/v1/candidates", json=candidate_payload)

    assert response.status_code == 201
    body = response.json()
    assert body["success"] is True
    assert body["data"]["email"] == "juan@example.com"
    assert body["data"]["lastName"] == "Pérez"
    assert body["data"]["educations"] == []
    assert body["data"]["createdBy"] == 1
    assert "timestamp" in body["meta"]
    assert [to for to, _ in email_service.sent] == ["recruiter@ats.com", "juan@example.com"]


def test_duplicate_create_returns_409(client, candidate_payload):
    client.post("/api/v1/candidates", json=candidate_payload)

    response = client.post("/api/v1/candidates", json=candidate_payload)

    assert response.status_code == 409
    body = response.json()
    assert body["success"] is False
    assert body["error"]["code"] == "DUPLICATE_EMAIL"
    assert client.get("/api/v1/candidates").json()["meta"]["total"] == 1


def test_create_then_get_round_trip(client, create_candidate):
    created = create_candidate(
        experiences=[
            {
                "company": "Acme",
                "position": "Developer",
                "startDate": "2020-02-01",
                "endDate": "2023-01-01",
                "isCurrent": True,
            }
        ]
    )

    response = client.get(f"/api/v1/candidates/{created['id']}")

    assert response.status_code == 200
    data = response.json()["data"]
    assert data["id"] == created["id"]
    assert data["recruiter"]["email"] == "recruiter@ats.com"
    assert data["experiences"][0]["startDate"] == "2020-02-01"
    assert data["experiences"][0]["endDate"] is None


def test_invalid_payload_returns_400_with_field_details(client, candidate_payload):
    response = client.post("/api/v1/candidates", json={**candidate_payload, "phone": "12"})

    assert response.status_code == 400
    error = response.json()["error"]
    assert error["code"] == "VALIDATION_FAILED"
    assert error["details"][0]["field"] == "phone"


def test_malformed_json_returns_400(client):
    response = client.post(
        "/api/v1/candidates", content=b"{not json", headers={"Content-Type": "application/json"}
    )

    assert response.status_code == 400
    assert response.json()["error"]["code"] == "VALIDATION_FAILED"


def test_unknown_candidate_returns_404(client):
    response = client.get("/api/v1/candidates/99999")

    assert response.status_code == 404
    assert "not found" in response.json()["error"]["message"].lower()


def test_non_positive_and_non_numeric_ids_return_400(client):
    assert client.get("/api/v1/candidates/0").status_code == 400
    assert client.get("/api/v1/candidates/-5").status_code == 400
    assert client.get("/api/v1/candidates/abc").status_code == 400


def test_list_paginates_and_clamps_limit(client, create_candidate):
    for i in range(3):
        create_candidate(email=f"candidate{i}@example.com")

    response = client.get("/api/v1/candidates", params={"page": 1, "limit": 2})
    body = response.json()
    assert len(body["data"]) == 2
    assert body["meta"]["total"] == 3
    assert body["meta"]["totalPages"] == 2
    assert body["data"][0]["email"] == "candidate2@example.com"

    meta = client.get("/api/v1/candidates", params={"limit": 1000}).json()["meta"]
    assert meta["limit"] == 100
    assert meta["page"] == 1


def test_list_filters_by_search_and_dates(client, create_candidate):
    create_candidate(email="ana@example.com", firstName="Ana")
    create_candidate(email="luis@example.com", firstName="Luis")

    assert client.get("/api/v1/candidates", params={"search": "luis"}).json()["meta"]["total"] == 1
    assert client.get("/api/v1/candidates", params={"startDate": "2000-01-01"}).json()["meta"]["total"] == 2
    assert client.get("/api/v1/candidates", params={"startDate": "2999-01-01"}).json()["meta"]["total"] == 0
    assert client.get("/api/v1/candidates", params={"recruiterId": 1}).json()["meta"]["total"] == 2


def test_bad_query_parameter_returns_400(client):
    response = client.get("/api/v1/candidates", params={"startDate": "yesterday"})

    assert response.status_code == 400
    assert response.json()["error"]["details"][0]["field"] == "startDate"


def test_search_endpoint(client, create_candidate):
    create_candidate()

    response = client.get("/api/v1/candidates/search", params={"q": "juan"})

    assert response.status_code == 200
    assert response.json()["meta"]["total"] == 1


def test_search_with_short_term_returns_400(client):
    response = client.get("/api/v1/candidates/search", params={"q": "j"})

    assert response.status_code == 400
    assert response.json()["error"]["code"] == "VALIDATION_FAILED"


def test_update_candidate(client, create_candidate, email_service):
    created = create_candidate()

    response = client.put(f"/api/v1/candidates/{created['id']}", json={"address": "Calle Nueva 7"})

    assert response.status_code == 200
    data = response.json()["data"]
    assert data["address"] == "Calle Nueva 7"
    assert data["email"] == "juan@example.com"
    assert email_service.sent[-1][1].subject.startswith("Candidate updated")


def test_update_to_existing_email_returns_409(client, create_candidate):
    create_candidate(email="first@example.com")
    second = create_candidate(email="second@example.com")

    response = client.put(f"/api/v1/candidates/{second['id']}", json={"email": "first@example.com"})

    assert response.status_code == 409


def test_update_and_delete_unknown_return_404(client):
    assert client.put("/api/v1/candidates/99999", json={"phone": "+34 600 000 000"}).status_code == 404
    assert client.delete("/api/v1/candidates/99999").status_code == 404


def test_delete_candidate(client, create_candidate):
    created = create_candidate()

    response = client.delete(f"/api/v1/candidates/{created['id']}")

    assert response.status_code == 204
    assert response.content == b""
    assert client.get(f"/api/v1/candidates/{created['id']}").status_code == 404


def test_search_treats_like_wildcards_literally(client, create_candidate):
    create_candidate(email="ana@example.com", firstName="Ana")
    create_candidate(email="luis@example.com", firstName="Luis")

    for term in ("%%", "__"):
        response = client.get("/api/v1/candidates/search", params={"q": term})
        assert response.status_code == 200
        assert response.json()["meta"]["total"] == 0


def test_search_matches_literal_underscore(client, create_candidate):
    create_candidate(email="ana_m@example.com", firstName="Ana")
    create_candidate(email="anam@example.com", firstName="Ana")

    response = client.get("/api/v1/candidates/search", params={"q": "ana_"})

    assert [c["email"] for c in response.json()["data"]] == ["ana_m@example.com"]


def test_id_beyond_integer_range_is_not_found(client):
    huge = "99999999999999999999"

    assert client.get(f"/api/v1/candidates/{huge}").status_code == 404
    assert client.put(f"/api/v1/candidates/{huge}", json={"phone": "+34 600 000 000"}).status_code == 404
    assert client.delete(f"/api/v1/candidates/{huge}").status_code == 404


def test_page_past_the_end_is_empty(client, create_candidate):
    create_candidate()

    response = client.get("/api/v1/candidates", params={"page": 10**19})

    assert response.status_code == 200
    body = response.json()
    assert body["data"] == []
    assert body["meta"]["total"] == 1


def test_recruiter_filter_out_of_range_returns_400(client):
    response = client.get("/api/v1/candidates", params={"recruiterId": 10**19})

    assert response.status_code == 400


def test_update_with_is_current_clears_end_date(client, create_candidate):
    created = create_candidate()

    response = client.put(
        f"/api/v1/candidates/{created['id']}",
        json={
            "educations": [
                {
                    "institution": "UPM",
                    "degree": "MSc",
                    "startDate": "2022-09-01",
                    "endDate": "2024-06-30",
                    "isCurrent": True,
                }
            ]
        },
    )

    assert response.status_code == 200
    education = response.json()["data"]["educations"][0]
    assert education["isCurrent"] is True
    assert education["endDate"] is None
