from floussly import create_app
import os

app = create_app()

if __name__ == "__main__":
    port = int(os.getenv("PORT", 5050))
    app.run(
        host="127.0.0.1",
        port=port,
        debug=False,
        use_reloader=False,
    )

# Start the API:
# PORT=5050 poetry run python run.py
# or: poetry run flask --app floussly:create_app --debug run

# Custom pricing table:
# FEE_SCHEDULE_PATH=./fee_schedule.json poetry run python run.py
# After editing the file, swap it in without a restart:
# curl -X POST -H "Authorization: Bearer $ADMIN_TOKEN" http://127.0.0.1:5050/admin/fees/reload

# Tokens for manual calls:
# poetry run python debug_jwt.py --role admin
