import os
from flask import Flask
from dotenv import load_dotenv

from .pedigree.analysis.compatibility import DEFAULT_COI_SENSITIVITY, load_risk_rules
from .pedigree.analysis.indexer import validate_generations
from .pedigree.models import DEFAULT_GENERATIONS

load_dotenv()

def create_app(test_config=None):
    app = Flask(__name__)

    app.config['SECRET_KEY'] = os.environ.get('SECRET_KEY')
    app.config['MAX_CONTENT_LENGTH'] = 16 * 1024 * 1024
    app.config['PEDIGREE_GENERATIONS'] = int(os.environ.get('PEDIGREE_GENERATIONS', DEFAULT_GENERATIONS))
    app.config['PEDIGREE_RISK_RULES_FILE'] = os.environ.get('PEDIGREE_RISK_RULES_FILE')
    app.config['COMPATIBILITY_COI_SENSITIVITY'] = float(
        os.environ.get('COMPATIBILITY_COI_SENSITIVITY', DEFAULT_COI_SENSITIVITY)
    )
    if test_config:
        app.config.update(test_config)

    validate_generations(app.config['PEDIGREE_GENERATIONS'])
    app.risk_rules = load_risk_rules(app.config['PEDIGREE_RISK_RULES_FILE'])

    # In-memory session store
    app.sessions = {}

    # Register blueprints
    from .routes import main_blueprint
    app.register_blueprint(main_blueprint)

    return app
