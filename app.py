import logging
import os

from dotenv import load_dotenv
from flask import Flask, current_app, jsonify, request

from escrow_config import EscrowConfig
from escrow_rewards import RewardError, RewardSubmitter, TransactionRevertedError


def create_app(submitter=None):
    app = Flask(__name__)
    # Built from the environment on first use when not injected
    app.extensions["reward_submitter"] = submitter

    @app.route('/health', methods=['GET'])
    def health():
        return jsonify({"status": "ok"})

    @app.route('/reward-winners', methods=['POST'])
    def reward_winners():
        data = request.get_json(silent=True)
        if not isinstance(data, dict):
            return jsonify({"error": "Request body must be a JSON object with 'winners' and 'amounts'"}), 400

        winners = data.get('winners')
        amounts = data.get('amounts')
        if not isinstance(winners, list) or not isinstance(amounts, list):
            return jsonify({"error": "'winners' and 'amounts' must both be lists"}), 400

        result = get_submitter().reward_winners(winners, amounts)

        if not result.ok:
            error = result.error
            # bad input never reached the chain
            if isinstance(error, RewardError) and not isinstance(error, TransactionRevertedError):
                return jsonify({"error": str(error)}), 400
            current_app.logger.error("Reward transaction failed: %s", error)
            return jsonify({"error": str(error), "tx_hash": result.tx_hash}), 500

        current_app.logger.info("Rewarded %d winners: %s", len(result.winners), result.tx_hash)
        return jsonify({
            "message": "Reward sent!",
            "tx_hash": result.tx_hash,
            "block_number": result.receipt["blockNumber"],
            "status": result.receipt["status"],
        })

    return app


def get_submitter():
    submitter = current_app.extensions.get("reward_submitter")
    if submitter is None:
        submitter = RewardSubmitter(EscrowConfig.from_env())
        current_app.extensions["reward_submitter"] = submitter
    return submitter


def configure_logging(level=logging.INFO):
    logging.basicConfig(
        level=level,
        format='%(asctime)s [%(name)s] %(levelname)s: %(message)s'
    )


if __name__ == '__main__':
    load_dotenv()  # Load the .env file here
    configure_logging()

    # Fail at startup when PRIVATE_KEY or ESCROW_CONTRACT_ADDRESS is missing
    app = create_app(RewardSubmitter(EscrowConfig.from_env()))
    app.run(debug=os.getenv("FLASK_DEBUG", "").lower() in ("1", "true", "yes"))
