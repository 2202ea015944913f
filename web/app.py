from flask import Flask, jsonify, request
import os
import sys
from pathlib import Path
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))
import photoproof
from photoproof import config
from photoproof.errors import ConfigurationError, SerializationError
from photoproof.image import Image
from photoproof.keys import VerificationContext, load_verifying_key
from photoproof.proof import proof_from_dict
from photoproof.sessions import VerifierSession

# 获取当前文件的绝对路径
current_dir = Path(__file__).parent.absolute()

MAX_CONTENT_LENGTH = 16 * 1024 * 1024  # 16MB max request


def create_app(verifying_key=None, keys_dir=None):
    """
    验证服务：POST /verify {"image": {...}, "proof": {...}}
    The verifying key is passed in or loaded lazily from keys_dir.
    """
    app = Flask(__name__)
    app.config['MAX_CONTENT_LENGTH'] = MAX_CONTENT_LENGTH
    app.config['KEYS_DIR'] = keys_dir or config.KEYS_DIR
    state = {'session': None}
    if verifying_key is not None:
        state['session'] = VerifierSession(VerificationContext.from_verifying_key(verifying_key))

    def verifier_session():
        if state['session'] is None:
            vk = load_verifying_key(app.config['KEYS_DIR'])
            state['session'] = VerifierSession(VerificationContext.from_verifying_key(vk))
        return state['session']

    @app.route('/')
    def index():
        return jsonify({'service': 'photoproof-verifier', 'version': photoproof.__version__})

    @app.route('/verifying_key')
    def verifying_key_info():
        try:
            vk = verifier_session().context.verifying_key
        except SerializationError as e:
            return jsonify({'error': str(e)}), 503
        return jsonify({
            'fingerprint': vk.fingerprint(),
            'backend': vk.backend,
            'circuit': vk.circuit,
            'public_key': vk.public_key.hex(),
        })

    @app.route('/verify', methods=['POST'])
    def verify_image():
        payload = request.get_json(silent=True)
        if not isinstance(payload, dict) or 'image' not in payload or 'proof' not in payload:
            return jsonify({'error': 'expected JSON body with "image" and "proof"'}), 400

        try:
            session = verifier_session()
        except SerializationError as e:
            return jsonify({'error': str(e)}), 503

        try:
            image = Image(payload['image']['matrix'], payload['image'].get('metadata'))
            proof = proof_from_dict(payload['proof'])
            is_valid, reason = session.check(image, proof)
        except (KeyError, TypeError, AttributeError) as e:
            return jsonify({'error': f'malformed image: {e}'}), 400
        except (ConfigurationError, SerializationError) as e:
            return jsonify({'error': str(e)}), 400

        return jsonify({'valid': is_valid, 'reason': reason, 'image_digest': image.digest()})

    @app.after_request
    def after_request(response):
        response.headers["Cache-Control"] = "no-cache, no-store, must-revalidate"
        response.headers["Pragma"] = "no-cache"
        response.headers["Expires"] = "0"
        return response

    return app


app = create_app()

if __name__ == '__main__':
    print("=== PhotoProof 验证服务启动 ===")
    print(f"应用目录: {current_dir}")
    print(f"密钥目录: {app.config['KEYS_DIR']}")
    app.run(host='0.0.0.0', port=int(os.environ.get('PHOTOPROOF_PORT', 5000)))
