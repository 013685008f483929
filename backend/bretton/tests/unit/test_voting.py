from bretton.logic.enums import Country, MotionOutcome, VoteChoice
from bretton.logic.scenario import ISSUES, get_issue
from bretton.logic.settings import GameSettings
from bretton.logic.state import RoomPlayer
from bretton.logic.voting import quorum_reached, tally_issue_votes, tally_motion_votes, vote_key


def _players(*countries: Country) -> dict[str, RoomPlayer]:
    return {
        f"player_{c.lower()}": RoomPlayer(player_id=f"player_{c.lower()}", username=c.lower(), country=c)
        for c in countries
    }


class TestTallyIssueVotes:
    def test_majority_option_scores_favored_and_opposed(self):
        issue = get_issue("reserve-currency")
        players = _players(Country.USA, Country.UK, Country.FRANCE)
        votes = {
            vote_key(issue.issue_id, Country.USA): "A",
            vote_key(issue.issue_id, Country.UK): "A",
            vote_key(issue.issue_id, Country.FRANCE): "B",
        }

        resolution = tally_issue_votes(issue, votes, players)

        assert resolution.counts == {"A": 2, "B": 1, "C": 0}
        assert resolution.winner_option_id == "A"
        assert resolution.deltas == {Country.USA: 10, Country.UK: -5, Country.FRANCE: -5}

    def test_only_seated_countries_receive_deltas(self):
        issue = get_issue("imf-quotas")
        players = _players(Country.USA, Country.INDIA)
        votes = {
            vote_key(issue.issue_id, Country.USA): "A",
            vote_key(issue.issue_id, Country.INDIA): "A",
        }

        resolution = tally_issue_votes(issue, votes, players)

        assert resolution.deltas == {Country.USA: 10, Country.INDIA: -5}

    def test_tie_goes_to_first_declared_option(self):
        issue = get_issue("exchange-adjustment")
        players = _players(Country.ARGENTINA, Country.FRANCE)
        votes = {
            vote_key(issue.issue_id, Country.ARGENTINA): "C",
            vote_key(issue.issue_id, Country.FRANCE): "B",
        }

        assert tally_issue_votes(issue, votes, players).winner_option_id == "B"

    def test_no_votes_means_no_winner(self):
        issue = ISSUES[0]
        resolution = tally_issue_votes(issue, {}, _players(Country.USA))
        assert resolution.winner_option_id is None
        assert resolution.deltas == {}

    def test_votes_of_departed_players_ignored(self):
        issue = get_issue("reserve-currency")
        players = _players(Country.USA)
        votes = {
            vote_key(issue.issue_id, Country.USA): "A",
            vote_key(issue.issue_id, Country.UK): "B",
            vote_key(issue.issue_id, Country.INDIA): "B",
        }
        assert tally_issue_votes(issue, votes, players).winner_option_id == "A"

    def test_custom_point_values(self):
        issue = get_issue("reserve-currency")
        players = _players(Country.USA, Country.UK)
        votes = {vote_key(issue.issue_id, Country.USA): "A"}
        settings = GameSettings(favored_points=20, opposed_points=-1)
        assert tally_issue_votes(issue, votes, players, settings).deltas == {Country.USA: 20, Country.UK: -1}


class TestTallyMotionVotes:
    def test_passed_motion_scores_alignment(self):
        players = _players(Country.USA, Country.UK, Country.USSR)
        votes = {
            "player_usa": VoteChoice.FOR,
            "player_uk": VoteChoice.FOR,
            "player_ussr": VoteChoice.AGAINST,
        }

        resolution = tally_motion_votes(votes, players, GameSettings())

        assert resolution.outcome == MotionOutcome.PASSED
        assert resolution.counts == {VoteChoice.FOR: 2, VoteChoice.AGAINST: 1, VoteChoice.ABSTAIN: 0}
        assert resolution.deltas == {Country.USA: 40, Country.UK: 40, Country.USSR: 10}

    def test_tie_fails_and_rewards_against(self):
        players = _players(Country.USA, Country.UK)
        votes = {"player_usa": VoteChoice.FOR, "player_uk": VoteChoice.AGAINST}

        resolution = tally_motion_votes(votes, players, GameSettings())

        assert resolution.outcome == MotionOutcome.FAILED
        assert resolution.deltas == {Country.USA: 10, Country.UK: 40}

    def test_abstain_points(self):
        players = _players(Country.USA, Country.UK)
        votes = {"player_usa": VoteChoice.ABSTAIN, "player_uk": VoteChoice.ABSTAIN}

        resolution = tally_motion_votes(votes, players, GameSettings())

        assert resolution.outcome == MotionOutcome.FAILED
        assert resolution.deltas == {Country.USA: 15, Country.UK: 15}

    def test_raw_string_choices_accepted(self):
        players = _players(Country.USA)
        resolution = tally_motion_votes({"player_usa": "for"}, players, GameSettings())
        assert resolution.outcome == MotionOutcome.PASSED

    def test_votes_of_non_players_ignored(self):
        players = _players(Country.USA)
        votes = {"player_usa": VoteChoice.FOR, "player_ghost": VoteChoice.AGAINST}

        resolution = tally_motion_votes(votes, players, GameSettings())

        assert resolution.counts[VoteChoice.AGAINST] == 0
        assert Country.UK not in resolution.deltas


class TestQuorum:
    def test_motion_quorum_requires_every_player(self):
        players = _players(Country.USA, Country.UK)
        assert quorum_reached({"player_usa": "for"}, players) is False
        assert quorum_reached({"player_usa": "for", "player_uk": "against"}, players) is True

    def test_issue_quorum_checks_current_issue(self):
        players = _players(Country.USA)
        votes = {vote_key("imf-quotas", Country.USA): "A"}
        assert quorum_reached(votes, players, issue_id="imf-quotas") is True
        assert quorum_reached(votes, players, issue_id="reserve-currency") is False

    def test_empty_room_never_reaches_quorum(self):
        assert quorum_reached({}, {}) is False
