"""
EPA 2024 AQI Calculator - PM2.5

The weather provider reports raw PM2.5 concentrations (µg/m³); the alerting
pipeline works on AQI. Conversion uses the EPA piecewise linear function:

    I_p = [(I_hi - I_lo) / (BP_hi - BP_lo)] * (C_p - BP_lo) + I_lo

References:
- EPA Final Rule (February 7, 2024), implementation date May 6, 2024
"""

import math
from typing import Dict


class AQICalculator:
    """EPA 2024 PM2.5 AQI calculator."""

    # (C_lo, C_hi, AQI_lo, AQI_hi, Category)
    PM25_BREAKPOINTS = [
        (0.0, 9.0, 0, 50, "Good"),
        (9.1, 35.4, 51, 100, "Moderate"),
        (35.5, 55.4, 101, 150, "Unhealthy for Sensitive Groups"),
        (55.5, 125.4, 151, 200, "Unhealthy"),
        (125.5, 225.4, 201, 300, "Very Unhealthy"),
        (225.5, 325.4, 301, 400, "Hazardous"),
        (325.5, 500.0, 401, 500, "Hazardous"),
    ]

    MAX_AQI = 500

    @classmethod
    def calculate_pm25_aqi(cls, concentration: float) -> Dict:
        """
        Calculate AQI for PM2.5.

        Concentrations are truncated to one decimal place before lookup, as
        the EPA technical guidance requires, so values never fall between
        two breakpoints.

        Returns:
            dict with 'aqi', 'category', 'concentration', 'pollutant'
        """
        if concentration < 0:
            raise ValueError("Concentration cannot be negative")

        truncated = math.floor(round(concentration * 10, 6)) / 10

        if truncated > cls.PM25_BREAKPOINTS[-1][1]:
            return {
                "aqi": cls.MAX_AQI,
                "category": "Hazardous",
                "concentration": concentration,
                "pollutant": "PM2.5",
            }

        for c_lo, c_hi, aqi_lo, aqi_hi, category in cls.PM25_BREAKPOINTS:
            if c_lo <= truncated <= c_hi:
                aqi = ((aqi_hi - aqi_lo) / (c_hi - c_lo)) * (truncated - c_lo) + aqi_lo
                return {
                    "aqi": round(aqi),
                    "category": category,
                    "concentration": concentration,
                    "pollutant": "PM2.5",
                }

        # Should never reach here if breakpoints are contiguous
        raise ValueError(f"No breakpoint found for concentration {concentration}")


def pm25_to_aqi(concentration: float) -> int:
    """Convenience wrapper returning only the AQI value."""
    return AQICalculator.calculate_pm25_aqi(concentration)["aqi"]
