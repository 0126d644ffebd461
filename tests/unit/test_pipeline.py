"""
Test Suite: dashboard orchestration
"""

from datetime import date

from metertrack.engine.pipeline import build_dashboard


TODAY = date(2025, 3, 16)


class TestBuildDashboard:
    def test_no_readings(self, gas_config):
        dashboard = build_dashboard([], gas_config, today=TODAY)

        assert dashboard["has_data"] is False
        assert dashboard["latest_reading"] is None
        assert dashboard["monthly_table"] == []
        assert dashboard["history"] == []
        assert dashboard["billing"]["expected_monthly_bill"] == 55.44
        assert dashboard["billing"]["balance"] is None

    def test_full_dashboard(self, gas_config, make_reading):
        readings = [
            make_reading(1000, 2025, 3, 1, consumption=0),
            make_reading(1020, 2025, 3, 16, consumption=210.0),
            make_reading(990, 2025, 2, 20),
        ]

        dashboard = build_dashboard(readings, gas_config, today=TODAY, months_back=3)

        assert dashboard["has_data"] is True
        assert dashboard["latest_reading"]["value"] == 1020
        assert dashboard["config"]["meter_type"] == "gas"

        current = dashboard["current_month"]
        # 20 m³ * 10.5 over 15 days -> 420 kWh per 30 days
        assert current["real"] == 420.0
        assert current["confidence"] == "high"
        assert current["status"] == "projected"

        assert [row["month_label"] for row in dashboard["monthly_table"]] == ["ene 25", "feb 25", "mar 25"]
        assert dashboard["monthly_table"][-1]["real"] == 420.0

        history = dashboard["history"]
        assert [item["value"] for item in history] == [1020, 1000, 990]
        assert history[0]["consumption_raw"] == 20.0

    def test_billing_section(self, gas_config, make_reading):
        readings = [
            make_reading(1000, 2025, 3, 1),
            make_reading(1020, 2025, 3, 16),
        ]

        billing = build_dashboard(readings, gas_config, today=TODAY)["billing"]

        assert billing["currency"] == "EUR"
        assert billing["current_month_consumption_raw"] == 20.0
        assert billing["current_month_cost"] == 23.46
        assert billing["average_daily_consumption_raw"] == 1.33
        # (4370 / 12 - 420) * 0.1117 * 12
        assert billing["balance"] == -74.84
        assert billing["balance_status"] == "charge"
        assert "additional charge" in billing["balance_message"]
