"""
Web server for location qualification, settings, health and metrics
"""

import asyncio
import logging
import threading
import time
from datetime import datetime, timezone
from flask import Flask, jsonify, request, Response
from pydantic import ValidationError
from prometheus_client import Counter, Histogram, generate_latest, CollectorRegistry, CONTENT_TYPE_LATEST

from .config import config
from .exceptions import QualificationError
from .storage.settings import Settings, settings_store
from .analysis.qualification import QualificationService

logger = logging.getLogger(__name__)

# Prometheus metrics setup
registry = CollectorRegistry()
app = Flask(__name__)

# Define metrics
REQUEST_COUNT = Counter(
    'http_requests_total',
    'Total HTTP requests',
    ['method', 'endpoint', 'status_code'],
    registry=registry
)

REQUEST_DURATION = Histogram(
    'http_request_duration_seconds',
    'HTTP request duration in seconds',
    ['method', 'endpoint'],
    registry=registry
)

QUALIFICATIONS_TOTAL = Counter(
    'qualifications_total',
    'Location qualification requests by outcome',
    ['outcome'],
    registry=registry
)

_qualification_service = None
_service_lock = threading.Lock()


def get_qualification_service() -> QualificationService:
    """Shared service, created on first use so importing the app needs no database"""
    global _qualification_service
    with _service_lock:
        if _qualification_service is None:
            _qualification_service = QualificationService()
        return _qualification_service


def _validation_message(error: ValidationError) -> str:
    first = error.errors()[0]
    field_name = '.'.join(str(part) for part in first.get('loc', ()))
    return f"Invalid {field_name}: {first.get('msg')}" if field_name else first.get('msg', 'Invalid settings')

# Middleware to track HTTP requests
@app.before_request
def before_request():
    request.start_time = time.time()

@app.after_request
def after_request(response):
    if hasattr(request, 'start_time'):
        duration = time.time() - request.start_time
        REQUEST_DURATION.labels(
            method=request.method,
            endpoint=request.endpoint or 'unknown'
        ).observe(duration)

        REQUEST_COUNT.labels(
            method=request.method,
            endpoint=request.endpoint or 'unknown',
            status_code=str(response.status_code)
        ).inc()

    return response

@app.route('/health')
def health_check():
    """Basic health check endpoint"""
    return jsonify({
        'status': 'healthy',
        'config': config.to_dict(),
        'timestamp': datetime.now(timezone.utc).isoformat()
    })

@app.route('/metrics')
def metrics():
    """Prometheus metrics endpoint"""
    try:
        return Response(generate_latest(registry), mimetype=CONTENT_TYPE_LATEST)
    except Exception as e:
        logger.error(f"Error in metrics endpoint: {e}")
        return Response(f"Error generating metrics: {str(e)}", status=500, mimetype='text/plain')

@app.route('/api/settings', methods=['GET'])
def get_settings():
    """Current qualification settings"""
    try:
        return jsonify(settings_store.get_settings().to_dict())
    except Exception as e:
        logger.error(f"Error in settings endpoint: {e}")
        return jsonify({'error': str(e)}), 500

@app.route('/api/settings', methods=['POST'])
def update_settings():
    """Validate and save qualification settings"""
    payload = request.get_json(silent=True)
    try:
        settings = Settings.from_payload(payload)
    except ValidationError as e:
        logger.warning(f"Rejected settings update: {e}")
        return jsonify({'error': _validation_message(e)}), 400
    except ValueError as e:
        return jsonify({'error': str(e)}), 400

    try:
        saved = settings_store.update_settings(settings)
        return jsonify(saved.to_dict())
    except Exception as e:
        logger.error(f"Error saving settings: {e}")
        return jsonify({'error': str(e)}), 500

@app.route('/api/qualify', methods=['POST'])
def qualify():
    """Qualify an address for kiosk placement"""
    payload = request.get_json(silent=True) or {}
    address = payload.get('address') if isinstance(payload, dict) else None

    if not isinstance(address, str) or not address.strip():
        QUALIFICATIONS_TOTAL.labels(outcome='error').inc()
        return jsonify({'error': 'Address is required'}), 400

    try:
        logger.info(f"API request to qualify: {address}")
        service = get_qualification_service()
        result = asyncio.run(service.qualify_location(address, settings_store.get_settings()))
    except QualificationError as e:
        logger.warning(f"Qualification failed for {address}: {e}")
        QUALIFICATIONS_TOTAL.labels(outcome='error').inc()
        return jsonify({'error': str(e)}), 400
    except Exception as e:
        logger.error(f"Unexpected error qualifying {address}: {e}")
        QUALIFICATIONS_TOTAL.labels(outcome='error').inc()
        return jsonify({'error': f"Failed to qualify location: {e}"}), 400

    QUALIFICATIONS_TOTAL.labels(outcome='qualified' if result.qualified else 'not_qualified').inc()
    return jsonify(result.to_dict())

@app.route('/')
def report_page():
    """Qualification form and report"""
    return '''
    <!DOCTYPE html>
    <html>
    <head>
        <title>Bitcoin ATM Location Qualification</title>
        <style>
            body { font-family: Arial, sans-serif; margin: 40px; max-width: 960px; }
            .card { border: 1px solid #ddd; padding: 20px; margin: 20px 0; border-radius: 8px; }
            .button {
                background: #007bff;
                color: white;
                padding: 10px 20px;
                border: none;
                border-radius: 4px;
                cursor: pointer;
                margin: 5px;
            }
            .button:hover { background: #0056b3; }
            .status { padding: 10px; margin: 10px 0; border-radius: 4px; }
            .success { background: #d4edda; color: #155724; }
            .error { background: #f8d7da; color: #721c24; }
            .info { background: #d1ecf1; color: #0c5460; }
            input { padding: 8px; margin: 5px; }
            #address { width: 60%; }
            table { width: 100%; border-collapse: collapse; }
            td { padding: 4px; border-bottom: 1px solid #eee; }
        </style>
    </head>
    <body>
        <h1>Bitcoin ATM Location Qualification</h1>

        <div class="card">
            <input id="address" placeholder="Street address, city, state">
            <button class="button" onclick="qualify()">Qualify</button>
        </div>

        <div class="card">
            <h2>Settings</h2>
            <label>Minimum density <input id="minDensity" type="number" min="0"></label>
            <label>Search radius (mi) <input id="radius" type="number" step="0.1" min="0.1" max="10"></label>
            <button class="button" onclick="saveSettings()">Save</button>
            <div id="settings-status"></div>
        </div>

        <div id="report"></div>

        <script>
            function card(title, ok, body) {
                return `<div class="card"><h2>${title}</h2>
                    <div class="status ${ok ? 'success' : 'error'}">${ok ? 'PASS' : 'FAIL'}</div>${body}</div>`;
            }

            function render(r) {
                const d = r.populationDensity, p = r.btmProximity, b = r.businessType, h = r.storeHours;
                let html = `<div class="status ${r.qualified ? 'success' : 'error'}">
                    <strong>${r.formattedAddress}</strong><br>${r.summary}</div>`;
                if (r.stateRejection.isAutoRejected) {
                    html += card('State', false, `<p>${r.stateRejection.rejectionReason}</p>`);
                }
                html += card('Population Density', d.meetsRequirement,
                    `<p>ZIP ${d.zipCode}: ${d.density.toLocaleString()} people per sq mi
                     (minimum ${d.threshold.toLocaleString()})</p>`);
                html += card('Nearby ATMs', p.meetsRequirement,
                    `<p>Bitcoin Depot ATMs: ${p.bitcoinDepotCount}, nearest
                     ${p.nearestBitcoinDepotMiles === null ? 'none' : p.nearestBitcoinDepotMiles + ' mi'}
                     (required ${p.requiredDistanceMiles} mi)</p>
                     <p>Competitors within one mile: ${p.competitorsWithinOneMile}</p>`);
                html += card('Business', b.meetsRequirement,
                    `<p>${b.name}: ${b.category} (${b.tier}${b.tierAmount ? ', $' + b.tierAmount : ''})</p>`);
                html += card('Store Hours', h.meetsRequirements,
                    `<p>${h.daysOpen} days open, ${h.averageHoursPerDay.toFixed(1)} hours average</p><table>` +
                    h.weeklySchedule.map(s => `<tr><td>${s.day}</td><td>${s.hours}</td></tr>`).join('') +
                    '</table>');
                document.getElementById('report').innerHTML = html;
            }

            async function qualify() {
                const address = document.getElementById('address').value;
                document.getElementById('report').innerHTML = '<div class="status info">Checking...</div>';
                const response = await fetch('/api/qualify', {
                    method: 'POST', body: JSON.stringify({ address: address }),
                    headers: { 'Content-Type': 'application/json' }
                });
                const data = await response.json();
                if (!response.ok) {
                    document.getElementById('report').innerHTML = `<div class="status error">${data.error}</div>`;
                    return;
                }
                render(data);
            }

            async function loadSettings() {
                const response = await fetch('/api/settings');
                const s = await response.json();
                document.getElementById('minDensity').value = s.minimumPopulationDensity;
                document.getElementById('radius').value = s.searchRadiusMiles;
            }

            async function saveSettings() {
                const response = await fetch('/api/settings', {
                    method: 'POST',
                    body: JSON.stringify({
                        minimumPopulationDensity: parseFloat(document.getElementById('minDensity').value),
                        searchRadiusMiles: parseFloat(document.getElementById('radius').value)
                    }),
                    headers: { 'Content-Type': 'application/json' }
                });
                const data = await response.json();
                document.getElementById('settings-status').innerHTML = response.ok
                    ? '<div class="status success">Saved</div>'
                    : `<div class="status error">${data.error}</div>`;
            }

            loadSettings();
        </script>
    </body>
    </html>
    '''

def run_server(host='0.0.0.0', port=5000, debug=False):
    """Run the Flask server"""
    app.run(host=host, port=port, debug=debug)
