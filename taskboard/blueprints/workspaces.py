"""Workspaces blueprint — /api/workspaces

Route Map:
  GET  /api/workspaces   — Workspaces the current user belongs to
  POST /api/workspaces   — Create workspace {name, description?}
  GET  /api/workspaces/<id> — Workspace with owner, members and readable boards
"""

from flask import Blueprint, jsonify, request
from flask_login import current_user

from taskboard.decorators import api_login_required
from taskboard.services import validation, workspace_service
from taskboard.services.serializers import workspace_dict

workspaces_bp = Blueprint("workspaces", __name__, url_prefix="/api/workspaces")


@workspaces_bp.route("", methods=["GET"])
@api_login_required
def list_workspaces():
    return jsonify([workspace_dict(w) for w in workspace_service.list_workspaces(current_user)])


@workspaces_bp.route("", methods=["POST"])
@api_login_required
def create_workspace():
    data = request.get_json(silent=True) or {}
    errors = []
    name = validation.text_field(data, "name", errors, max_length=100, required=True)
    description = validation.text_field(data, "description", errors, max_length=500)
    validation.check(errors)

    workspace = workspace_service.create_workspace(current_user, name, description)
    return jsonify(workspace_dict(workspace)), 201


@workspaces_bp.route("/<workspace_id>", methods=["GET"])
@api_login_required
def get_workspace(workspace_id):
    return jsonify(workspace_service.get_workspace_detail(current_user, workspace_id))
