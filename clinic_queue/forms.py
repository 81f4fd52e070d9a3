"""Operator input validation using Pydantic models."""

import re

from pydantic import BaseModel, Field, field_validator

from clinic_queue.state_machine import Priority


class CheckInForm(BaseModel):
    """Front-desk check-in request."""

    patient_id: str = Field(..., min_length=1, description="ID of an existing patient")
    priority: Priority = Field(Priority.NORMAL, description="Normal, Urgent or Emergency")
    skip_vitals: bool = Field(False, description="Send straight to the doctor")
    insurance_provider: str | None = Field(None, description="Insurance company name")
    insurance_member_number: str | None = Field(None, description="Insurance member number")

    @field_validator("priority", mode="before")
    @classmethod
    def normalize_priority(cls, v):
        """Accept priority names in any case."""
        if isinstance(v, str):
            return v.strip().capitalize()
        return v

    def insurance(self) -> dict | None:
        if not self.insurance_provider:
            return None
        return {
            "provider": self.insurance_provider,
            "member_number": self.insurance_member_number or "",
        }


class VitalsForm(BaseModel):
    """Vitals captured at triage. Every field is optional."""

    bp: str = Field("", description="Blood pressure as systolic/diastolic, e.g. 120/80")
    temp: str = Field("", description="Temperature in degrees Celsius")
    weight: str = Field("", description="Weight in kg")
    height: str = Field("", description="Height in cm")
    heart_rate: str = Field("", description="Beats per minute")
    resp_rate: str = Field("", description="Breaths per minute")
    spo2: str = Field("", description="Oxygen saturation percentage")

    @field_validator("bp", mode="before")
    @classmethod
    def normalize_bp(cls, v):
        """Convert '120 / 80', '120-80' or '120 over 80' to '120/80'."""
        if not v:
            return ""
        match = re.match(r"^\s*(\d{2,3})\s*(?:/|-|over)\s*(\d{2,3})\s*$", str(v), re.IGNORECASE)
        if not match:
            raise ValueError("blood pressure must look like 120/80")
        return f"{match.group(1)}/{match.group(2)}"

    @field_validator("temp", "weight", "height", "heart_rate", "resp_rate", mode="before")
    @classmethod
    def normalize_number(cls, v):
        """Strip units and whitespace; keep the numeric part as a string."""
        if v is None or v == "":
            return ""
        match = re.match(r"^\s*(\d+(?:\.\d+)?)", str(v))
        if not match:
            raise ValueError("must be a number")
        return match.group(1)

    @field_validator("spo2", mode="before")
    @classmethod
    def normalize_spo2(cls, v):
        if v is None or v == "":
            return ""
        digits = str(v).strip().rstrip("%").strip()
        if not digits.replace(".", "", 1).isdigit() or not 0 <= float(digits) <= 100:
            raise ValueError("SpO2 must be a percentage between 0 and 100")
        return digits


class LabOrderForm(BaseModel):
    test_id: str = Field(..., min_length=1)
    test_name: str = Field(..., min_length=1)
    price: float = Field(..., ge=0)


class PrescriptionForm(BaseModel):
    inventory_id: str = Field(..., min_length=1)
    name: str = Field(..., min_length=1)
    price: float = Field(..., ge=0, description="Unit price")
    dosage: str = Field("1x2 for 3 days", description="Dosage instructions")
    quantity: int = Field(1, ge=1)


def bmi(weight_kg: str | float, height_cm: str | float) -> float | None:
    """Body mass index from weight and height, or None when either is missing."""
    try:
        weight = float(weight_kg or 0)
        height = float(height_cm or 0) / 100
    except ValueError:
        return None
    if weight <= 0 or height <= 0:
        return None
    return round(weight / (height * height), 1)
