from flask import Blueprint, request, jsonify, current_app, Response, send_file
import pandas as pd
import json
import uuid
from kennel.pedigree.calculator import LineageCalculator
from kennel.pedigree.errors import InvalidDepthError, LineageError
from kennel.pedigree.source import DataFramePedigreeSource, standardize_pedigree
from kennel.pedigree.analysis.analyzer import classify_coi
from kennel.pedigree.analysis.indexer import validate_generations
from kennel.pedigree.validation.validator import validate_pedigree
import logging
from io import BytesIO
from werkzeug.utils import secure_filename

# Blueprints
main_blueprint = Blueprint('main', __name__)

# General app configuration
logging.basicConfig(level=logging.INFO)

INVALID_SESSION = "Invalid or expired session."


def _get_session(session_id):
    if not session_id or session_id not in current_app.sessions:
        return None
    return current_app.sessions[session_id]


def _generations_arg(values=None):
    values = request.args if values is None else values
    raw = values.get('generations')
    if raw is None or raw == '':
        return None
    try:
        generations = int(raw)
    except ValueError:
        raise InvalidDepthError(f"Generations must be an integer, got {raw!r}.")
    return validate_generations(generations)


def _ids_arg(name):
    return [i.strip() for i in request.form.get(name, '').split(',') if i.strip()]


def _coi_payload(dog_id, result):
    return {
        'dog_id': dog_id,
        'coi': result.value,
        'status': result.status,
        'risk_level': classify_coi(result.value) if result.ok else None,
        'error': result.error,
        'warnings': list(result.warnings),
    }


@main_blueprint.errorhandler(InvalidDepthError)
def invalid_depth(e):
    return jsonify({"error": str(e)}), 400


# --- Main Blueprint Routes (Core App) ---

@main_blueprint.route('/', methods=['GET'])
def index():
    return "Kennel lineage analysis"


@main_blueprint.route('/upload_and_process', methods=['POST'])
def upload_and_process():
    if 'pedigree_file' not in request.files or not request.files['pedigree_file'].filename:
        return jsonify({"error": "No file selected."}), 400

    file = request.files['pedigree_file']
    try:
        df = standardize_pedigree(pd.read_csv(file, comment='#'))
        expected_columns = {'dog_id', 'sire_id', 'dam_id'}
        if not expected_columns.issubset(df.columns):
            missing = sorted(list(expected_columns - set(df.columns)))
            return jsonify({"error": f"Missing columns: {', '.join(missing)}"}), 400

        df = df.astype(object).where(df.notna(), None)
        return jsonify({
            'filename': secure_filename(file.filename),
            'rows': df.to_dict(orient='records'),
        })

    except Exception as e:
        current_app.logger.error(f"File processing error: {e}", exc_info=True)
        return jsonify({"error": f"Error while processing the file: {e}"}), 500


@main_blueprint.route('/start_calculation', methods=['POST'])
def start_calculation():
    data = request.get_json(silent=True)
    if not data:
        return jsonify({"error": 'No data to calculate.'}), 400

    rows = data.get('rows') if isinstance(data, dict) else data
    try:
        df = pd.DataFrame(rows)
    except Exception as e:
        return jsonify({"error": f"Malformed pedigree rows: {e}"}), 400

    errors = validate_pedigree(df)
    if errors:
        return jsonify({"error": "Pedigree validation failed.", "errors": errors}), 400

    try:
        session_id = str(uuid.uuid4())
        source = DataFramePedigreeSource(df)
        calculator = LineageCalculator(
            source.fetch_pedigree,
            generations=current_app.config['PEDIGREE_GENERATIONS'],
            risk_rules=current_app.risk_rules,
            coi_sensitivity=current_app.config['COMPATIBILITY_COI_SENSITIVITY'],
        )
        current_app.sessions[session_id] = {'data': source.df, 'source': source, 'calculator': calculator}
        return jsonify({'session_id': session_id})
    except Exception as e:
        current_app.logger.error(f"Error starting calculation: {e}", exc_info=True)
        return jsonify({'error': 'Server error while preparing the calculation.'}), 500


@main_blueprint.route('/calculate_ibcs')
def calculate_ibcs_route():
    session = _get_session(request.args.get('session_id'))
    if session is None:
        return Response(INVALID_SESSION, status=400)
    generations = _generations_arg()

    app = current_app._get_current_object()

    def generate_results_stream():
        with app.app_context():
            try:
                calculator = session['calculator']
                dog_ids = session['source'].dog_ids
                total_dogs = len(dog_ids)

                for i, dog_id in enumerate(dog_ids):
                    result = calculator.calculate_coefficient_of_inbreeding(dog_id, generations)
                    data = _coi_payload(dog_id, result)
                    data['progress'] = int(((i + 1) / total_dogs) * 100)
                    yield f"data: {json.dumps(data)}\n\n"

                yield f"event: complete\ndata: {json.dumps({'message': 'Calculation finished.'})}\n\n"

            except Exception as e:
                current_app.logger.error(f"Calculation error in stream: {e}", exc_info=True)
                error_message = f'An error occurred during the calculation: {str(e)}'
                yield f"event: error\ndata: {json.dumps({'error': error_message})}\n\n"

    return Response(generate_results_stream(), mimetype='text/event-stream')


@main_blueprint.route('/pedigree/<session_id>/dogs/<dog_id>/coi')
def dog_coi(session_id, dog_id):
    session = _get_session(session_id)
    if session is None:
        return jsonify({"error": INVALID_SESSION}), 404
    if dog_id not in session['source']:
        return jsonify({"error": f"Unknown dog '{dog_id}'."}), 404

    result = session['calculator'].calculate_coefficient_of_inbreeding(dog_id, _generations_arg())
    return jsonify(_coi_payload(dog_id, result))


@main_blueprint.route('/pedigree/<session_id>/dogs/<dog_id>/common-ancestors')
def dog_common_ancestors(session_id, dog_id):
    session = _get_session(session_id)
    if session is None:
        return jsonify({"error": INVALID_SESSION}), 404
    if dog_id not in session['source']:
        return jsonify({"error": f"Unknown dog '{dog_id}'."}), 404

    result = session['calculator'].find_common_ancestors(dog_id, _generations_arg())
    return jsonify({
        'dog_id': dog_id,
        'status': result.status,
        'common_ancestors': [a.to_dict() for a in result.value],
        'error': result.error,
        'warnings': list(result.warnings),
    })


@main_blueprint.route('/pedigree/<session_id>/dogs/<dog_id>/bloodlines')
def dog_bloodlines(session_id, dog_id):
    session = _get_session(session_id)
    if session is None:
        return jsonify({"error": INVALID_SESSION}), 404
    if dog_id not in session['source']:
        return jsonify({"error": f"Unknown dog '{dog_id}'."}), 404

    result = session['calculator'].calculate_bloodline_percentages(dog_id, _generations_arg())
    return jsonify({
        'dog_id': dog_id,
        'status': result.status,
        'bloodlines': [{'line': line, 'percentage': pct} for line, pct in result.value.items()],
        'error': result.error,
    })


@main_blueprint.route('/pedigree/<session_id>/compatibility')
def compatibility(session_id):
    session = _get_session(session_id)
    if session is None:
        return jsonify({"error": INVALID_SESSION}), 404

    sire_id = request.args.get('sire_id')
    dam_id = request.args.get('dam_id')
    if not sire_id or not dam_id:
        return jsonify({"error": "Both sire_id and dam_id are required."}), 400

    report = session['calculator'].calculate_breeding_compatibility(sire_id, dam_id, _generations_arg())
    return jsonify({'sire_id': sire_id, 'dam_id': dam_id, **report.to_dict()})


@main_blueprint.route('/pedigree/animals/<session_id>')
def get_animals(session_id):
    session = _get_session(session_id)
    if session is None:
        return jsonify({"error": INVALID_SESSION}), 404

    df = session['data'].copy()
    calculator = session['calculator']

    # Same figure as the per-dog COI endpoint at the session depth
    df['coi'] = df['dog_id'].apply(
        lambda dog_id: calculator.calculate_coefficient_of_inbreeding(dog_id).value
    )

    if 'name' not in df.columns:
        df['name'] = df['dog_id']

    # Infer gender from parent roles when it was not recorded
    if 'gender' not in df.columns:
        dam_ids = df['dam_id'].dropna().unique()
        sire_ids = df['sire_id'].dropna().unique()
        df['gender'] = 'U'
        df.loc[df['dog_id'].isin(dam_ids), 'gender'] = 'F'
        df.loc[df['dog_id'].isin(sire_ids), 'gender'] = 'M'

    df['gender'] = df['gender'].astype(str).str.strip().str.upper().str[:1]

    columns_to_return = ['dog_id', 'name', 'coi']
    sires = df[df['gender'] == 'M'][columns_to_return].to_dict(orient='records')
    dams = df[df['gender'] == 'F'][columns_to_return].to_dict(orient='records')

    return jsonify({'sires': sires, 'dams': dams})


@main_blueprint.route('/pedigree/export_results', methods=['POST'])
def export_results():
    session = _get_session(request.form.get('session_id'))
    if session is None:
        return INVALID_SESSION, 400

    try:
        calculator = session['calculator']
        source = session['source']
        generations = _generations_arg(request.form)

        sire_ids = [i for i in _ids_arg('sire_ids') if i in source]
        dam_ids = [i for i in _ids_arg('dam_ids') if i in source]

        coi_cache = {}

        def coi_of(dog_id):
            if dog_id not in coi_cache:
                result = calculator.calculate_coefficient_of_inbreeding(dog_id, generations)
                coi_cache[dog_id] = result.value if result.ok else None
            return coi_cache[dog_id]

        export_data = []
        for pairing in calculator.calculate_mating_matrix(sire_ids, dam_ids, generations):
            report = pairing['report']
            export_data.append({
                'Sire': pairing['sire_id'],
                'Sire COI': coi_of(pairing['sire_id']),
                'Dam': pairing['dam_id'],
                'Dam COI': coi_of(pairing['dam_id']),
                'Expected Litter COI': report.breeding_coi if report.ok else None,
                'COI Status': 'computed' if report.ok else 'unavailable',
                'COI Risk Level': report.coi_risk_level,
                'Compatibility Score': report.compatibility_score,
                'Common Ancestors': len(report.common_ancestors),
                'Risks': '; '.join(report.risks),
            })

        output_df = pd.DataFrame(export_data)

        output = BytesIO()
        with pd.ExcelWriter(output, engine='openpyxl') as writer:
            output_df.to_excel(writer, index=False, sheet_name='Mating Results')
        output.seek(0)

        return send_file(
            output,
            mimetype='application/vnd.openxmlformats-officedocument.spreadsheetml.sheet',
            as_attachment=True,
            download_name='mating_results.xlsx'
        )

    except LineageError as e:
        return str(e), 400
    except Exception as e:
        current_app.logger.error(f"Error exporting results: {e}", exc_info=True)
        return "Error while exporting.", 500
