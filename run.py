from league import create_app, db
from league.models import (
    BettingRound,
    Fixture,
    Season,
    SeasonWinner,
    Team,
    User,
    UserBet,
)

app = create_app()


@app.shell_context_processor
def make_shell_context():
    return {
        "db": db,
        "User": User,
        "Season": Season,
        "Team": Team,
        "Fixture": Fixture,
        "BettingRound": BettingRound,
        "UserBet": UserBet,
        "SeasonWinner": SeasonWinner,
    }


if __name__ == "__main__":
    app.run(host="0.0.0.0", port=5000, debug=True)
