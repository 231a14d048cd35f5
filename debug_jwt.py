#!/usr/bin/env python3
"""Mint a dev JWT for calling the fee API by hand"""

import argparse
import os

from dotenv import load_dotenv
from flask import Flask
from flask_jwt_extended import JWTManager, create_access_token, decode_token

load_dotenv()

ap = argparse.ArgumentParser()
ap.add_argument("--user", default="dev-user-id")
ap.add_argument("--role", default="user", help="use 'admin' for /admin/fees/reload")
args = ap.parse_args()

app = Flask(__name__)
app.config["JWT_SECRET_KEY"] = os.getenv("JWT_SECRET", "dev-secret")

jwt = JWTManager(app)

with app.app_context():
    token = create_access_token(identity=args.user, additional_claims={"role": args.role})
    print("Token:")
    print(token)
    print("\nDecoded:")
    print(decode_token(token))
