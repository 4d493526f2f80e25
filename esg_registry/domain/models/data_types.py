"""Catalog of submittable ESG data types.

The enum values are what goes onto the ledger in ``submitRecord`` and into
the mirror's ``data_type`` column.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class DataType(str, Enum):
    """ESG metric categories accepted for submission."""

    CARBON_EMISSIONS = "carbon_emissions"
    ENERGY_CONSUMPTION = "energy_consumption"
    WATER_USAGE = "water_usage"
    WASTE_GENERATION = "waste_generation"
    RENEWABLE_ENERGY = "renewable_energy"
    EMPLOYEE_SATISFACTION = "employee_satisfaction"
    SAFETY_INCIDENTS = "safety_incidents"
    DIVERSITY_RATIO = "diversity_ratio"
    LABOR_AUDIT = "labor_audit"
    SUPPLY_CHAIN_ETHICS = "supply_chain_ethics"
    OTHER = "other"


@dataclass(frozen=True)
class DataTypeDescriptor:
    """Presentation metadata for a data type."""

    data_type: DataType
    label: str
    description: str
    units: tuple[str, ...]


DATA_TYPE_CATALOG: tuple[DataTypeDescriptor, ...] = (
    DataTypeDescriptor(
        DataType.CARBON_EMISSIONS,
        "Carbon Emissions",
        "Total greenhouse gas emissions",
        ("tonnes CO2", "kg CO2", "tonnes CO2e"),
    ),
    DataTypeDescriptor(
        DataType.ENERGY_CONSUMPTION,
        "Energy Consumption",
        "Total energy usage",
        ("MWh", "kWh", "GJ", "BTU"),
    ),
    DataTypeDescriptor(
        DataType.WATER_USAGE,
        "Water Usage",
        "Total water consumption",
        ("cubic meters", "liters", "gallons"),
    ),
    DataTypeDescriptor(
        DataType.WASTE_GENERATION,
        "Waste Generation",
        "Total waste produced",
        ("tonnes", "kg", "cubic meters"),
    ),
    DataTypeDescriptor(
        DataType.RENEWABLE_ENERGY,
        "Renewable Energy",
        "Renewable energy usage percentage",
        ("%", "MWh", "kWh"),
    ),
    DataTypeDescriptor(
        DataType.EMPLOYEE_SATISFACTION,
        "Employee Satisfaction",
        "Employee satisfaction score",
        ("score (1-10)", "%", "index"),
    ),
    DataTypeDescriptor(
        DataType.SAFETY_INCIDENTS,
        "Safety Incidents",
        "Number of workplace safety incidents",
        ("count", "per 1000 employees", "rate"),
    ),
    DataTypeDescriptor(
        DataType.DIVERSITY_RATIO,
        "Diversity Ratio",
        "Workforce diversity percentage",
        ("%", "ratio", "index"),
    ),
    DataTypeDescriptor(
        DataType.LABOR_AUDIT,
        "Labor Audit",
        "Outcome of a labor practices audit",
        ("score (1-10)", "findings", "compliance rate"),
    ),
    DataTypeDescriptor(
        DataType.SUPPLY_CHAIN_ETHICS,
        "Supply Chain Ethics",
        "Ethical supply chain score",
        ("score (1-10)", "%", "compliance rate"),
    ),
    DataTypeDescriptor(
        DataType.OTHER,
        "Other",
        "Any other sustainability metric",
        (),
    ),
)
