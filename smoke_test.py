from __future__ import annotations

from coach import Settings
from web import create_app


def main() -> None:
    # No delays so the opponent answers inside the same request
    app = create_app(settings=Settings(opponent_delay_s=0, reevaluation_delay_s=0, seed=1))
    client = app.test_client()

    # new game
    resp = client.post("/api/new", json={})
    assert resp.status_code == 200, resp.data
    data = resp.get_json()
    assert "fen" in data and "pragmatic" in data and "artistic" in data

    # play the artistic suggestion and let the opponent reply
    resp = client.post("/api/execute", json={"candidate": "artistic"})
    assert resp.status_code == 200, resp.data
    data = resp.get_json()
    assert data["phase"] == "awaiting_human", data["phase"]
    print("Smoke OK.", data["messages"][-1]["text"])


if __name__ == "__main__":
    main()
