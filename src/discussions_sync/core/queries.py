"""GraphQL documents for the GitHub Discussions API."""

SEARCH_DISCUSSIONS_QUERY = """
query ($query: String!, $limit: Int!, $after: String) {
  search(query: $query, type: DISCUSSION, first: $limit, after: $after) {
    pageInfo {
      hasNextPage
      endCursor
    }
    nodes {
      ... on Discussion {
        id
        url
        number
        title
        body
        createdAt
        updatedAt
        category {
          id
          name
        }
        labels(first: 100) {
          nodes {
            id
            name
          }
        }
      }
    }
  }
}
"""

GET_REPOSITORY_INFO_QUERY = """
query GetRepositoryInfo($owner: String!, $name: String!) {
  repository(owner: $owner, name: $name) {
    id
    discussionCategories(first: 100) {
      nodes {
        id
        name
      }
    }
    labels(first: 100) {
      nodes {
        id
        name
      }
    }
  }
}
"""

VIEWER_QUERY = """
query {
  viewer {
    login
  }
}
"""

CREATE_DISCUSSION_MUTATION = """
mutation CreateDiscussion($repositoryId: ID!, $categoryId: ID!, $title: String!, $body: String!) {
  createDiscussion(input: {
    repositoryId: $repositoryId,
    categoryId: $categoryId,
    title: $title,
    body: $body
  }) {
    discussion {
      id
      number
    }
  }
}
"""

UPDATE_DISCUSSION_MUTATION = """
mutation UpdateDiscussion($discussionId: ID!, $title: String!, $body: String!) {
  updateDiscussion(input: {
    discussionId: $discussionId,
    title: $title,
    body: $body
  }) {
    discussion {
      id
      number
    }
  }
}
"""

CREATE_LABEL_MUTATION = """
mutation CreateLabel($repositoryId: ID!, $name: String!, $description: String, $color: String!) {
  createLabel(input: {
    repositoryId: $repositoryId,
    name: $name,
    description: $description,
    color: $color
  }) {
    label {
      id
      name
    }
  }
}
"""

ADD_LABELS_MUTATION = """
mutation AddLabelsToDiscussion($labelableId: ID!, $labelIds: [ID!]!) {
  addLabelsToLabelable(input: {
    labelableId: $labelableId,
    labelIds: $labelIds
  }) {
    clientMutationId
  }
}
"""

REMOVE_LABELS_MUTATION = """
mutation RemoveLabelsFromDiscussion($labelableId: ID!, $labelIds: [ID!]!) {
  removeLabelsFromLabelable(input: {
    labelableId: $labelableId,
    labelIds: $labelIds
  }) {
    clientMutationId
  }
}
"""
