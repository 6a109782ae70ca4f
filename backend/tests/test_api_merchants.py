"""Tests for merchant and merchant rule endpoints."""


class TestMerchantEndpoints:
    """Test /api/v1/merchants."""

    def test_create_merchant(self, client, events):
        response = client.post("/api/v1/merchants", json={
            "original_name": "AMZN MKTP US",
            "normalized_name": "Amazon",
            "category": "Shopping",
            "flags": ["marketplace"],
        })
        assert response.status_code == 201
        data = response.json()
        assert data["normalized_name"] == "Amazon"
        assert data["is_active"] is True
        assert data["transaction_count"] == 0
        assert events.published[-1]["topic"] == "merchant.created"

    def test_create_duplicate(self, client, sample_merchant):
        response = client.post("/api/v1/merchants", json={
            "original_name": "NETFLIX INC",
            "normalized_name": "Netflix",
            "category": "Entertainment",
        })
        assert response.status_code == 409

    def test_get_merchant(self, client, sample_merchant):
        response = client.get(f"/api/v1/merchants/{sample_merchant.id}")
        assert response.status_code == 200
        assert response.json()["original_name"] == "NETFLIX.COM"

    def test_get_merchant_not_found(self, client):
        response = client.get("/api/v1/merchants/nonexistent-id")
        assert response.status_code == 404

    def test_update_refreshes_cache(self, client, sample_merchant):
        client.get(f"/api/v1/merchants/{sample_merchant.id}")

        response = client.put(f"/api/v1/merchants/{sample_merchant.id}", json={"category": "Streaming"})
        assert response.status_code == 200
        assert response.json()["category"] == "Streaming"

        response = client.get(f"/api/v1/merchants/{sample_merchant.id}")
        assert response.json()["category"] == "Streaming"

    def test_deactivate(self, client, sample_merchant, events):
        response = client.delete(f"/api/v1/merchants/{sample_merchant.id}")
        assert response.status_code == 200
        assert response.json() == {"deactivated": True}

        response = client.get("/api/v1/merchants", params={"is_active": "false"})
        assert [m["id"] for m in response.json()["items"]] == [sample_merchant.id]
        assert events.published[-1]["topic"] == "merchant.deactivated"

    def test_search(self, client, sample_merchant):
        response = client.get("/api/v1/merchants", params={"query": "netf"})
        assert response.status_code == 200
        data = response.json()
        assert data["total"] == 1
        assert data["total_pages"] == 1

        response = client.get("/api/v1/merchants", params={"category": "Groceries"})
        assert response.json()["total"] == 0


class TestNormalizeEndpoint:
    """Test POST /api/v1/merchants/normalize."""

    def test_rule_match(self, client, oracle, netflix_rule):
        response = client.post("/api/v1/merchants/normalize", json={"description": "NETFLIX DIGITAL"})
        assert response.status_code == 200
        data = response.json()
        assert data["merchant"] == "Netflix"
        assert data["source"] == "rule"
        assert data["confidence"] == 1.0
        oracle.classify_merchant.assert_not_awaited()

    def test_oracle_classification(self, client, oracle):
        response = client.post("/api/v1/merchants/normalize", json={"description": "SPOTIFY USA"})
        assert response.status_code == 200
        data = response.json()
        assert data["merchant"] == "Spotify"
        assert data["is_subscription"] is True
        assert data["source"] == "oracle"

    def test_oracle_outage(self, client, failing_oracle):
        response = client.post("/api/v1/merchants/normalize", json={"description": "SPOTIFY USA"})
        assert response.status_code == 502


class TestMerchantRuleEndpoints:
    """Test /api/v1/merchant-rules."""

    def test_create_and_list(self, client):
        for pattern, priority in (("HULU", 1), ("^SPOTIFY", 5)):
            response = client.post("/api/v1/merchant-rules", json={
                "pattern": pattern,
                "normalized_name": pattern.strip("^").title(),
                "category": "Entertainment",
                "priority": priority,
            })
            assert response.status_code == 201

        response = client.get("/api/v1/merchant-rules")
        assert [r["pattern"] for r in response.json()] == ["^SPOTIFY", "HULU"]

    def test_invalid_pattern(self, client):
        response = client.post("/api/v1/merchant-rules", json={
            "pattern": "[unclosed",
            "normalized_name": "Broken",
            "category": "Other",
        })
        assert response.status_code == 422

    def test_delete_invalidates_matches(self, client, netflix_rule):
        client.post("/api/v1/merchants/normalize", json={"description": "NETFLIX DIGITAL"})

        response = client.delete(f"/api/v1/merchant-rules/{netflix_rule.id}")
        assert response.status_code == 200
        assert response.json() == {"deleted": True}

        response = client.post("/api/v1/merchants/normalize", json={"description": "NETFLIX DIGITAL"})
        assert response.json()["source"] == "oracle"

    def test_delete_missing(self, client):
        response = client.delete("/api/v1/merchant-rules/nonexistent-id")
        assert response.status_code == 404
