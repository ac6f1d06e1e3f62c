# backend/counterpos/routes/profile.py
"""
Company profile routes.

The profile is a per-namespace singleton; GET creates it with shop
defaults on first access. last_invoice_number is read-only here.
"""
from flask import Blueprint, jsonify, request

from ..decorators import handle_pos_errors
from ..models import CompanyProfile
from ..services import profile_service
from ..validation import ModelValidationPolicy, validate_payload

PROFILE_POLICY = ModelValidationPolicy(
    writable_fields=set(profile_service.PROFILE_MUTABLE_FIELDS),
    required_on_create=set(),
)

profile_bp = Blueprint("profile", __name__, url_prefix="/api/profile")


@profile_bp.get("")
@handle_pos_errors("Failed to load company profile")
def get_profile():
    return jsonify(profile_service.ensure_profile().to_dict())


@profile_bp.put("")
@handle_pos_errors("Failed to update company profile")
def update_profile():
    payload = request.get_json(silent=True)
    patch = validate_payload(model=CompanyProfile, payload=payload, policy=PROFILE_POLICY, partial=True)
    return jsonify(profile_service.update_profile(patch))
