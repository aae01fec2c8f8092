"""
Card Lens - Main Flask Application
REST API exposing card recognition and fingerprint capture
"""
from typing import Optional, Tuple, Union

from flask import Flask, request, jsonify
from flask_cors import CORS

import config
from card_recognition import CardRecognitionEngine
from database import init_db, LocalCardStore
from exceptions import CatalogQueryError, DecodeError, LocalStoreError
from feature_extractor import decode_image
from logger import get_logger, log_api_call, PerformanceLogger
from perceptual_hash import calculate_phash, fingerprint_to_hex

# Initialize logger for this module
logger = get_logger('app')

# Initialize Flask app
logger.info("Initializing Flask application...")
app = Flask(__name__)
app.config['SECRET_KEY'] = config.SECRET_KEY
app.config['MAX_CONTENT_LENGTH'] = config.MAX_CONTENT_LENGTH

CORS(app)

# Initialize database and components
init_db()
card_store = LocalCardStore()
recognition_engine = CardRecognitionEngine(store=card_store)
logger.info("Application initialization complete")


def allowed_file(filename):
    """Check if file extension is allowed"""
    return '.' in filename and \
           filename.rsplit('.', 1)[1].lower() in config.ALLOWED_EXTENSIONS


def read_image_payload() -> Tuple[Optional[Union[bytes, str]], Optional[str]]:
    """
    Pull the image out of the request: a multipart 'file', a JSON body with a
    base64 'image' field, or the raw request body.

    Returns:
        (image data, error message)
    """
    if 'file' in request.files:
        file = request.files['file']
        if file.filename == '':
            return None, 'No file selected'
        if not allowed_file(file.filename):
            return None, 'Invalid file type'
        data = file.read()
    elif request.is_json:
        payload = request.get_json(silent=True) or {}
        data = payload.get('image')
        if data is not None and not isinstance(data, str):
            return None, "'image' must be a base64 string"
    else:
        data = request.get_data()

    if not data:
        return None, 'No image provided'
    return data, None


# ============================================================================
# HEALTH
# ============================================================================

@app.route('/api/health', methods=['GET'])
def health():
    """Liveness check"""
    return jsonify({'status': 'ok'})

# ============================================================================
# CARD SCANNING & RECOGNITION ENDPOINTS
# ============================================================================

@app.route('/api/scan/recognize', methods=['POST'])
@log_api_call()
def recognize_scan():
    """Recognize a card photo and return ranked candidates"""
    data, error = read_image_payload()
    if error:
        logger.warning(f"Recognize: {error}")
        return jsonify({'error': error}), 400

    try:
        result = recognition_engine.recognize(data)
    except DecodeError as e:
        return jsonify({'error': str(e)}), 400
    except CatalogQueryError as e:
        return jsonify({'error': str(e)}), 502

    logger.info(f"Recognition complete | source={result.source} | candidates={len(result.candidates)} | "
                f"query={result.search_query!r}")
    return jsonify(result.to_dict())


@app.route('/api/cards/<card_id>/fingerprint', methods=['POST'])
@log_api_call()
def capture_fingerprint(card_id):
    """Compute and store the fingerprint of an owned card from a photo"""
    data, error = read_image_payload()
    if error:
        return jsonify({'error': error}), 400

    try:
        with PerformanceLogger("capture_fingerprint", logger):
            fingerprint = calculate_phash(decode_image(data))
        stored = card_store.set_fingerprint(card_id, fingerprint)
    except DecodeError as e:
        return jsonify({'error': str(e)}), 400
    except LocalStoreError as e:
        return jsonify({'error': str(e)}), 500

    if not stored:
        return jsonify({'error': 'Card not found'}), 404

    return jsonify({'card_id': card_id, 'fingerprint': fingerprint_to_hex(fingerprint)})

# ============================================================================
# MAIN
# ============================================================================

if __name__ == '__main__':
    logger.info("=" * 60)
    logger.info("Card Lens Server Starting")
    logger.info("=" * 60)
    logger.info(f"Server starting on http://localhost:{config.PORT}")
    logger.info(f"Database: {config.SQLALCHEMY_DATABASE_URI}")
    logger.info("=" * 60)

    app.run(debug=config.DEBUG, host=config.HOST, port=config.PORT)
