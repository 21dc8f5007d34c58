"""
Automation Server Client - Lifecycle and HTTP access for the n8n workflow engine.

This service handles:
- Detecting an already running server or spawning one as a child process
- Watching the child's output for readiness (or an early startup error)
- Creating/updating/activating the default workflows
- Workflow, execution and webhook HTTP calls
- Shutting the child process down
"""

import json
import logging
import os
import subprocess
import threading
from typing import Dict, List, Any, Optional

import requests

logger = logging.getLogger(__name__)

# Global client instance
_client = None

READY_MARKERS = (
    'n8n ready on',
    'Editor is now accessible',
    'Server is listening on',
    'n8n is ready',
)

PARTS_ANALYSIS_WEBHOOK = 'chatgpt-parts-analysis'
STALE_CALLS_WEBHOOK = 'check-stale-calls'

# (file name, activate after creation)
DEFAULT_WORKFLOWS = (
    ('chatgpt-parts-analysis.json', False),
    ('stale-calls-workflow.json', True),
)


class AutomationServerError(Exception):
    """Raised when the automation server can't be started or an API call fails"""
    def __init__(self, message: str, status_code: Optional[int] = None, response_data: Any = None):
        self.message = message
        self.status_code = status_code
        self.response_data = response_data
        super().__init__(self.message)


def clean_workflow_for_api(workflow_data: Dict[str, Any]) -> Dict[str, Any]:
    """
    Strip an exported workflow down to the fields the public API accepts.
    Webhook ids and other generated node fields are dropped.
    """
    nodes = []
    for node in workflow_data.get('nodes') or []:
        nodes.append({
            'parameters': node.get('parameters') or {},
            'id': node.get('id'),
            'name': node.get('name'),
            'type': node.get('type'),
            'typeVersion': node.get('typeVersion') or 1,
            'position': node.get('position') or [0, 0],
        })

    return {
        'name': workflow_data['name'],
        'nodes': nodes,
        'connections': workflow_data.get('connections') or {},
        'settings': workflow_data.get('settings') or {},
    }


class AutomationClient:
    """Client for a locally hosted n8n server."""

    def __init__(self, config, http_session: Optional[requests.Session] = None):
        self.host = config.get('N8N_HOST', 'localhost')
        self.port = int(config.get('N8N_PORT', 5678))
        self.basic_auth_user = config.get('N8N_BASIC_AUTH_USER', 'admin')
        self.basic_auth_password = config.get('N8N_BASIC_AUTH_PASSWORD', 'admin123')
        self.encryption_key = config.get('N8N_ENCRYPTION_KEY', 'service-call-manager-n8n-key')
        self.user_folder = config.get('N8N_USER_FOLDER')
        self.api_key = config.get('N8N_API_KEY')
        self.start_command = list(config.get('N8N_START_COMMAND') or ['npx', 'n8n', 'start'])
        self.startup_timeout = config.get('N8N_STARTUP_TIMEOUT', 45)
        self.api_timeout = config.get('N8N_API_TIMEOUT', 30)
        self.workflows_folder = config.get('WORKFLOWS_FOLDER')

        self.api = http_session or requests.Session()
        self.api.headers.update({'Content-Type': 'application/json'})
        # API key when available, otherwise basic auth
        if self.api_key:
            self.api.headers['X-N8N-API-KEY'] = self.api_key
        else:
            self.api.auth = (self.basic_auth_user, self.basic_auth_password)

        self.process: Optional[subprocess.Popen] = None
        self._ready = threading.Event()
        self._startup_done = threading.Event()
        self._startup_error: Optional[str] = None
        self._starting = False
        self._lock = threading.Lock()

    # =========================================================================
    # STATE
    # =========================================================================

    @property
    def base_url(self) -> str:
        return f"http://{self.host}:{self.port}"

    def get_server_url(self) -> str:
        return self.base_url

    def is_ready(self) -> bool:
        return self._ready.is_set()

    def get_status(self) -> Dict[str, Any]:
        return {
            'isReady': self.is_ready(),
            'serverUrl': self.base_url,
            'managedProcess': self.process is not None and self.process.poll() is None,
        }

    # =========================================================================
    # LIFECYCLE
    # =========================================================================

    def initialize(self, autostart: bool = True, setup_workflows: bool = True) -> bool:
        """
        Connect to (or start) the server and install default workflows.
        Never raises; returns whether the server is ready.
        """
        logger.info("Initializing automation server client...")
        try:
            if self.check_if_running():
                logger.info("Automation server already running")
                self._ready.set()
            elif autostart:
                self.start_server()
            else:
                logger.info("Automation server not running and autostart disabled")

            if self.is_ready() and setup_workflows:
                self.setup_default_workflows()

        except Exception as e:
            logger.error(f"Failed to initialize automation server, continuing with local workflows: {e}")

        return self.is_ready()

    def check_if_running(self) -> bool:
        """The editor UI answering on the base URL means the server is up."""
        try:
            response = requests.get(self.base_url, timeout=5)
            return response.status_code == 200
        except requests.RequestException:
            return False

    def _build_env(self) -> Dict[str, str]:
        env = dict(os.environ)
        env.update({
            'N8N_PORT': str(self.port),
            'N8N_HOST': self.host,
            'N8N_BASIC_AUTH_ACTIVE': 'true',
            'N8N_BASIC_AUTH_USER': self.basic_auth_user,
            'N8N_BASIC_AUTH_PASSWORD': self.basic_auth_password,
            'N8N_ENCRYPTION_KEY': self.encryption_key,
            'N8N_DISABLE_UI': 'false',
            'N8N_LOG_LEVEL': 'info',
            'WEBHOOK_URL': f"{self.base_url}/",
            # No telemetry
            'N8N_DIAGNOSTICS_ENABLED': 'false',
            'N8N_VERSION_NOTIFICATIONS_ENABLED': 'false',
            'N8N_TEMPLATES_ENABLED': 'false',
        })
        if self.user_folder:
            env['N8N_USER_FOLDER'] = self.user_folder
        return env

    def start_server(self) -> bool:
        """
        Spawn the server and wait for a readiness line on stdout.

        Returns True once ready, False if the startup timeout passes first.

        Raises:
            AutomationServerError: If the process can't be spawned, reports an
                error on stderr, or exits before becoming ready
        """
        with self._lock:
            if self._starting or self.process is not None:
                return self.is_ready()
            self._starting = True
            self._startup_done.clear()
            self._startup_error = None

        try:
            if self.user_folder:
                os.makedirs(self.user_folder, exist_ok=True)

            logger.info(f"Starting automation server: {' '.join(self.start_command)}")
            try:
                self.process = subprocess.Popen(
                    self.start_command,
                    env=self._build_env(),
                    stdin=subprocess.DEVNULL,
                    stdout=subprocess.PIPE,
                    stderr=subprocess.PIPE,
                    text=True,
                    bufsize=1
                )
            except OSError as e:
                raise AutomationServerError(f"Failed to spawn automation server: {e}")

            threading.Thread(target=self._watch_stdout, args=(self.process.stdout,), daemon=True).start()
            threading.Thread(target=self._watch_stderr, args=(self.process.stderr,), daemon=True).start()

            if not self._startup_done.wait(timeout=self.startup_timeout):
                logger.warning("Automation server startup timeout - continuing with local workflows")
                return False

            if self._startup_error:
                raise AutomationServerError(f"Automation server startup error: {self._startup_error}")

            logger.info(f"Automation server ready at {self.base_url}")
            return True
        finally:
            self._starting = False

    def _watch_stdout(self, stream):
        for line in iter(stream.readline, ''):
            line = line.rstrip()
            if line:
                logger.info(f"n8n: {line}")
            if not self._startup_done.is_set() and any(marker in line for marker in READY_MARKERS):
                self._ready.set()
                self._startup_done.set()

        # EOF: the process has exited
        logger.info("Automation server process output closed")
        self._ready.clear()
        if not self._startup_done.is_set():
            self._startup_error = 'process exited before becoming ready'
            self._startup_done.set()

    def _watch_stderr(self, stream):
        for line in iter(stream.readline, ''):
            line = line.rstrip()
            if not line:
                continue
            logger.warning(f"n8n error: {line}")
            # Deprecation notices and warnings on stderr are not fatal
            if ('error' in line.lower() and 'deprecated' not in line and 'warning' not in line
                    and not self._startup_done.is_set()):
                self._startup_error = line
                self._startup_done.set()

    def shutdown(self, timeout: int = 5):
        """Terminate the child process, killing it if it doesn't exit in time."""
        logger.info("Shutting down automation server client...")
        process = self.process
        if process is not None and process.poll() is None:
            process.terminate()
            try:
                process.wait(timeout=timeout)
            except subprocess.TimeoutExpired:
                logger.warning("Automation server did not exit, killing it")
                process.kill()
                process.wait()

        self.process = None
        self._ready.clear()
        logger.info("Automation server client shut down")

    # =========================================================================
    # HTTP
    # =========================================================================

    def _request(self, method: str, path: str, **kwargs) -> Any:
        kwargs.setdefault('timeout', self.api_timeout)
        try:
            response = self.api.request(method, f"{self.base_url}{path}", **kwargs)
            response.raise_for_status()
        except requests.HTTPError as e:
            data = _response_payload(e.response)
            message = data.get('message') if isinstance(data, dict) else None
            raise AutomationServerError(
                message or str(e),
                status_code=e.response.status_code if e.response is not None else None,
                response_data=data
            )
        except requests.RequestException as e:
            raise AutomationServerError(f"Automation server request failed: {e}")

        return _response_payload(response)

    def get_workflows(self) -> List[Dict[str, Any]]:
        """List workflows. Returns an empty list on error."""
        try:
            data = self._request('GET', '/api/v1/workflows')
        except AutomationServerError as e:
            logger.error(f"Error getting workflows: {e.message}")
            return []

        if isinstance(data, dict):
            data = data.get('data', [])
        return data if isinstance(data, list) else []

    def create_workflow(self, workflow: Dict[str, Any]) -> str:
        """Create a workflow and return its id ('existing' if the name is taken)."""
        try:
            data = self._request('POST', '/api/v1/workflows', json=workflow)
        except AutomationServerError as e:
            if e.status_code == 400 and 'already exists' in (e.message or ''):
                logger.info(f"Workflow {workflow.get('name')} already exists")
                return 'existing'
            logger.error(f"Error creating workflow: {e.response_data or e.message}")
            raise

        logger.info(f"Created workflow: {workflow.get('name')} (ID: {data.get('id')})")
        return data.get('id')

    def update_workflow(self, workflow_id: str, workflow: Dict[str, Any]) -> Dict[str, Any]:
        return self._request('PATCH', f'/api/v1/workflows/{workflow_id}', json=workflow)

    def activate_workflow(self, workflow_id: str) -> Dict[str, Any]:
        return self._request('POST', f'/api/v1/workflows/{workflow_id}/activate')

    def ensure_workflow(self, workflow: Dict[str, Any], activate: bool = True) -> str:
        """Update the workflow with the same name if there is one, otherwise create it."""
        existing = next((w for w in self.get_workflows() if w.get('name') == workflow['name']), None)

        if existing:
            workflow_id = existing['id']
            self.update_workflow(workflow_id, workflow)
            logger.info(f"Workflow updated: {workflow['name']} ({workflow_id})")
            if activate and not existing.get('active'):
                self.activate_workflow(workflow_id)
            return workflow_id

        workflow_id = self.create_workflow(workflow)
        if activate and workflow_id != 'existing':
            self.activate_workflow(workflow_id)
        return workflow_id

    def execute_workflow(self, workflow_id: str, data: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        return self._request('POST', f'/api/v1/workflows/{workflow_id}/execute', json={'data': data or {}})

    def get_execution(self, execution_id: str) -> Dict[str, Any]:
        return self._request('GET', f'/api/v1/executions/{execution_id}')

    def get_workflow_executions(self, workflow_id: str, limit: int = 10) -> List[Dict[str, Any]]:
        """Latest executions of a workflow. Returns an empty list on error."""
        try:
            data = self._request('GET', '/api/v1/executions', params={
                'filter': json.dumps({'workflowId': workflow_id}),
                'limit': limit,
            })
        except AutomationServerError as e:
            logger.error(f"Error getting workflow executions: {e.message}")
            return []

        return data.get('data', []) if isinstance(data, dict) else []

    def trigger_webhook(self, webhook_path: str, data: Any) -> Any:
        """
        POST to a production webhook. Webhooks don't use API auth.
        The parts analysis webhook gets a longer timeout since the model call can take a minute.
        """
        timeout = 60 if webhook_path == PARTS_ANALYSIS_WEBHOOK else 10
        logger.info(f"Triggering webhook {webhook_path} with timeout {timeout}s")

        try:
            response = requests.post(f"{self.base_url}/webhook/{webhook_path}", json=data, timeout=timeout)
            response.raise_for_status()
        except requests.HTTPError as e:
            payload = _response_payload(e.response)
            message = payload.get('message') if isinstance(payload, dict) else None
            logger.error(f"Error triggering webhook {webhook_path}: {message or e}")
            raise AutomationServerError(
                message or str(e),
                status_code=e.response.status_code if e.response is not None else None,
                response_data=payload
            )
        except requests.RequestException as e:
            logger.error(f"Error triggering webhook {webhook_path}: {e}")
            raise AutomationServerError(f"Webhook {webhook_path} failed: {e}")

        return _response_payload(response)

    # =========================================================================
    # DEFAULT WORKFLOWS
    # =========================================================================

    def load_workflow_file(self, filename: str) -> Optional[Dict[str, Any]]:
        """Load and clean a workflow definition from the workflows folder."""
        if not self.workflows_folder:
            return None

        path = os.path.join(self.workflows_folder, filename)
        if not os.path.exists(path):
            logger.warning(f"Workflow file not found: {path}")
            return None

        with open(path, 'r', encoding='utf-8') as f:
            return clean_workflow_for_api(json.load(f))

    def setup_default_workflows(self) -> Dict[str, str]:
        """Create any missing default workflows. Returns name -> id (or status) per workflow."""
        results = {}
        existing_names = {w.get('name') for w in self.get_workflows()}
        logger.info(f"Found {len(existing_names)} existing workflows")

        for filename, activate in DEFAULT_WORKFLOWS:
            try:
                workflow = self.load_workflow_file(filename)
                if workflow is None:
                    results[filename] = 'missing'
                    continue

                if workflow['name'] in existing_names:
                    logger.info(f"Workflow already exists: {workflow['name']}")
                    results[workflow['name']] = 'existing'
                    continue

                workflow_id = self.create_workflow(workflow)
                results[workflow['name']] = workflow_id

                if activate and workflow_id != 'existing':
                    try:
                        self.activate_workflow(workflow_id)
                        logger.info(f"Workflow created and activated: {workflow['name']}")
                    except AutomationServerError:
                        logger.warning(f"Workflow created, manual activation required: {workflow['name']}")

            except (AutomationServerError, OSError, ValueError, KeyError) as e:
                logger.error(f"Error setting up workflow {filename}: {e}")
                results[filename] = 'error'

        return results


def _response_payload(response) -> Any:
    """JSON body if there is one, else the raw text (or {} for an empty body)."""
    if response is None or not response.content:
        return {}
    try:
        return response.json()
    except ValueError:
        return response.text


def get_automation_client(config=None) -> AutomationClient:
    """Get or create the global automation client."""
    global _client
    if _client is None:
        if config is None:
            from config import get_config
            cfg = get_config()
            config = {key: getattr(cfg, key) for key in dir(cfg) if key.isupper()}
        _client = AutomationClient(config)
    return _client


def set_automation_client(client: Optional[AutomationClient]):
    """Replace the global client (used by the app factory and tests)."""
    global _client
    _client = client
