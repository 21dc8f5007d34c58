#!/usr/bin/env python3
"""
Push the bundled workflow definitions to a running n8n server
Run after starting n8n (or the app with N8N_AUTOSTART) to create/update the workflows

Usage:
    python setup_workflows.py            # all bundled workflows
    python setup_workflows.py stale      # stale calls workflow only
    python setup_workflows.py parts      # parts analysis workflow only
"""

import sys
import requests

from config import get_config
from services.automation_client import (
    AutomationClient, AutomationServerError, DEFAULT_WORKFLOWS, STALE_CALLS_WEBHOOK
)

WORKFLOW_ALIASES = {
    'parts': 'chatgpt-parts-analysis.json',
    'stale': 'stale-calls-workflow.json',
}

SAMPLE_STALE_PAYLOAD = {
    'staleCalls': [
        {
            'id': 'test-call-1',
            'customerName': 'Test Customer',
            'address': '123 Test St',
            'status': 'InProgress',
            'hoursSinceCreated': 25,
            'hoursSinceUpdated': 25
        }
    ]
}


def _config_dict():
    cfg = get_config()
    return {key: getattr(cfg, key) for key in dir(cfg) if key.isupper()}


def setup_workflow(client, filename, activate):
    """Create or update one workflow. Returns its id, or None on failure."""
    workflow = client.load_workflow_file(filename)
    if workflow is None:
        print(f"❌ Workflow file not found: {filename}")
        return None

    print(f"📄 Loaded workflow: {workflow['name']}")

    try:
        workflow_id = client.ensure_workflow(workflow, activate=activate)
    except AutomationServerError as e:
        print(f"❌ Failed to set up {workflow['name']}: {e}")
        if e.status_code == 401:
            print("   Check N8N_API_KEY (or N8N_BASIC_AUTH_USER / N8N_BASIC_AUTH_PASSWORD)")
        elif e.response_data:
            print(f"   Details: {e.response_data}")
        return None

    print(f"✅ {workflow['name']} ready (ID: {workflow_id})")
    return workflow_id


def check_stale_calls_webhook(client):
    print("🧪 Testing webhook...")
    try:
        result = client.trigger_webhook(STALE_CALLS_WEBHOOK, SAMPLE_STALE_PAYLOAD)
        print(f"✅ Webhook test successful: {result}")
        return True
    except AutomationServerError as e:
        print("⚠️  Webhook test failed. The workflow may need manual activation.")
        print(f"   Error: {e}")
        return False


def main(argv):
    client = AutomationClient(_config_dict())

    if not client.check_if_running():
        print(f"❌ n8n server is not running at {client.base_url}. Please start it first.")
        return 1
    print(f"✅ n8n server is running at {client.base_url}")

    wanted = [WORKFLOW_ALIASES.get(arg, arg) for arg in argv] or [name for name, _ in DEFAULT_WORKFLOWS]
    activation = dict(DEFAULT_WORKFLOWS)

    failures = 0
    for filename in wanted:
        workflow_id = setup_workflow(client, filename, activation.get(filename, True))
        if workflow_id is None:
            failures += 1
        elif filename == WORKFLOW_ALIASES['stale']:
            check_stale_calls_webhook(client)

    print("\n" + "=" * 50)
    if failures:
        print(f"❌ {failures} workflow(s) failed. Please check the errors above.")
        return 1

    print("🎉 Setup complete!")
    print(f"   Open the n8n editor at {client.get_server_url()} to verify the workflows are active")
    return 0


if __name__ == '__main__':
    try:
        sys.exit(main(sys.argv[1:]))
    except requests.RequestException as e:
        print(f"❌ Setup failed: {e}")
        sys.exit(1)
